"""Tests for the manifest input models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from e2e_runner.manifest import Manifest, ManifestNode


class TestManifestNode:
    """Per-node manifest settings."""

    def test_unset_fields_have_empty_defaults(self) -> None:
        node = ManifestNode(address="10.0.0.2")
        assert node.proxy_port == 0
        assert node.start_at == 0
        assert node.fast_sync == ""
        assert node.database == ""
        assert node.abci_protocol == ""
        assert node.privval_protocol == ""
        assert node.retain_blocks == 0

    def test_persist_interval_absent_is_none(self) -> None:
        assert ManifestNode(address="10.0.0.2").persist_interval is None

    def test_persist_interval_explicit_zero_is_kept(self) -> None:
        node = ManifestNode.model_validate({"ip": "10.0.0.2", "persist_interval": 0})
        assert node.persist_interval == 0

    def test_ip_alias(self) -> None:
        assert ManifestNode.model_validate({"ip": "fd80::2"}).address == "fd80::2"

    def test_port_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            ManifestNode(address="10.0.0.2", proxy_port=70000)

    def test_negative_retain_blocks(self) -> None:
        with pytest.raises(ValidationError):
            ManifestNode(address="10.0.0.2", retain_blocks=-1)


class TestManifest:
    """Whole-testnet manifest."""

    def test_manifest_file_key_spellings(self) -> None:
        manifest = Manifest.model_validate(
            {
                "name": "ci",
                "ip": "10.1.0.0/16",
                "initial_height": 1000,
                "initial_state": {"items": "1"},
                "node": {"validator01": {"ip": "10.1.0.2", "proxy_port": 5701}},
                "validator_update": {"1010": {"validator01": 20}},
            }
        )
        assert manifest.network == "10.1.0.0/16"
        assert manifest.initial_height == 1000
        assert manifest.nodes["validator01"].proxy_port == 5701
        assert manifest.validator_updates == {"1010": {"validator01": 20}}

    def test_field_names_accepted(self) -> None:
        manifest = Manifest(
            name="ci",
            network="10.1.0.0/16",
            nodes={"a": ManifestNode(address="10.1.0.2")},
        )
        assert list(manifest.nodes) == ["a"]

    def test_initial_height_absent_is_none(self) -> None:
        assert Manifest(network="10.1.0.0/16").initial_height is None

    def test_voting_power_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Manifest(network="10.1.0.0/16", validator_updates={"5": {"a": 256}})
