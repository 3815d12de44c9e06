"""Tests for the configuration model."""

from __future__ import annotations

import dataclasses

import pytest

from backup_storage._config import BackendConfig, RegistryConfig


class TestBackendConfig:
    def test_defaults(self) -> None:
        cfg = BackendConfig(type="local")
        assert cfg.options == {}

    def test_frozen(self) -> None:
        cfg = BackendConfig(type="local")
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.type = "sftp"  # type: ignore[misc]


class TestRegistryConfigFromDict:
    def test_round_trip(self) -> None:
        cfg = RegistryConfig.from_dict(
            {
                "backends": {
                    "offsite": {
                        "type": "sftp",
                        "options": {"address": "backup.example.com", "username": "ch", "key_path": "~/.ssh/id"},
                    },
                    "scratch": {"type": "local", "options": {"root": "/tmp/scratch"}},
                },
            }
        )
        assert set(cfg.backends) == {"offsite", "scratch"}
        assert cfg.backends["offsite"].type == "sftp"
        assert cfg.backends["offsite"].options["address"] == "backup.example.com"
        assert cfg.backends["scratch"] == BackendConfig(type="local", options={"root": "/tmp/scratch"})

    def test_options_default_to_empty(self) -> None:
        cfg = RegistryConfig.from_dict({"backends": {"x": {"type": "local"}}})
        assert cfg.backends["x"].options == {}

    def test_empty(self) -> None:
        assert RegistryConfig.from_dict({}).backends == {}

    def test_backends_not_a_dict(self) -> None:
        with pytest.raises(TypeError, match="'backends'"):
            RegistryConfig.from_dict({"backends": ["local"]})

    def test_backend_entry_not_a_dict(self) -> None:
        with pytest.raises(TypeError, match="'x'"):
            RegistryConfig.from_dict({"backends": {"x": "local"}})

    def test_options_not_a_dict(self) -> None:
        with pytest.raises(TypeError, match="Options"):
            RegistryConfig.from_dict({"backends": {"x": {"type": "local", "options": "root=/tmp"}}})

    def test_missing_type(self) -> None:
        with pytest.raises(KeyError):
            RegistryConfig.from_dict({"backends": {"x": {"options": {}}}})
