"""Manifest models: the loosely-structured input a testnet is built from.

A manifest is what a user writes. Nothing here is checked beyond basic
types; :func:`e2e_runner.testnet.build_testnet` turns it into a validated
:class:`~e2e_runner.testnet.Testnet`. Reading manifest files is left to the
caller, any mapping with the right shape can be fed to
:meth:`Manifest.model_validate`.

Optional scalars are ``None`` when absent so that an explicit zero (notably
``persist_interval = 0``, which disables persistence) is never mistaken for
"not configured".
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

VotingPower = Annotated[int, Field(ge=0, le=255)]


class ManifestNode(BaseModel):
    """Settings for one node, as written in the manifest."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = Field(default="", alias="ip")
    proxy_port: Annotated[int, Field(ge=0, le=65535)] = 0
    start_at: Annotated[int, Field(ge=0)] = 0
    fast_sync: str = ""
    database: str = ""
    abci_protocol: str = ""
    privval_protocol: str = ""
    persist_interval: Annotated[int, Field(ge=0)] | None = None
    retain_blocks: Annotated[int, Field(ge=0)] = 0


class Manifest(BaseModel):
    """A whole testnet, as written in the manifest.

    ``validator_updates`` is keyed by height *text* (manifest formats such
    as TOML only allow string keys); heights are parsed during the build.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    network: str = Field(default="", alias="ip")
    initial_height: Annotated[int, Field(ge=0)] | None = None
    initial_state: dict[str, str] = Field(default_factory=dict)
    nodes: dict[str, ManifestNode] = Field(default_factory=dict, alias="node")
    validator_updates: dict[str, dict[str, VotingPower]] = Field(
        default_factory=dict, alias="validator_update"
    )
