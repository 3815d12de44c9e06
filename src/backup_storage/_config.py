"""Configuration model: immutable data containers describing backends."""

from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class BackendConfig:
    """Describes a backend instance.

    :param type: Backend kind (e.g. ``"sftp"``, ``"local"``).
    :param options: Keyword arguments passed to the backend constructor.
    """

    type: str
    options: dict[str, object] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class RegistryConfig:
    """Top-level configuration container.

    :param backends: Mapping of backend names to their configs.
    """

    backends: dict[str, BackendConfig] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> RegistryConfig:
        """Construct from a plain dict (e.g. parsed TOML/JSON).

        Example::

            RegistryConfig.from_dict({
                "backends": {
                    "offsite": {
                        "type": "sftp",
                        "options": {"address": "backup.example.com", "username": "ch", "key_path": "~/.ssh/id_rsa"},
                    },
                },
            })

        :param data: Dict with a ``backends`` key.
        :raises TypeError: If the structure is not a mapping of mappings.
        """
        raw_backends = data.get("backends", {})
        if not isinstance(raw_backends, dict):
            msg = "Expected 'backends' to be a dict"
            raise TypeError(msg)

        backends: dict[str, BackendConfig] = {}
        for name, cfg in raw_backends.items():
            if not isinstance(cfg, dict):
                msg = f"Backend config for '{name}' must be a dict"
                raise TypeError(msg)
            options = cfg.get("options", {})
            if not isinstance(options, dict):
                msg = f"Options for backend '{name}' must be a dict"
                raise TypeError(msg)
            backends[str(name)] = BackendConfig(
                type=str(cfg["type"]),
                options=dict(options),
            )

        return cls(backends=backends)
