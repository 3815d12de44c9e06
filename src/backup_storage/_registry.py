"""Registry: backend kinds, construction, and connected-backend lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from backup_storage._config import RegistryConfig

if TYPE_CHECKING:
    from types import TracebackType

    from backup_storage._backend import RemoteStorage
    from backup_storage._config import BackendConfig

log = logging.getLogger(__name__)

# Global backend factory registry: maps kind strings to backend classes.
_BACKEND_FACTORIES: dict[str, type[RemoteStorage]] = {}


def register_backend(kind: str, cls: type[RemoteStorage]) -> None:
    """Register a backend class for a given kind.

    :param kind: The kind identifier (e.g. ``"sftp"``).
    :param cls: The backend class to instantiate.
    """
    _BACKEND_FACTORIES[kind] = cls


def _register_builtin_backends() -> None:
    """Register the built-in backends."""
    from backup_storage.backends._local import LocalBackend
    from backup_storage.backends._sftp import SFTPBackend

    _BACKEND_FACTORIES.setdefault("local", LocalBackend)
    _BACKEND_FACTORIES.setdefault("sftp", SFTPBackend)


def create_backend(config: BackendConfig) -> RemoteStorage:
    """Instantiate (but do not connect) the backend described by ``config``.

    :raises ValueError: If the kind is unknown or the options are rejected.
    """
    _register_builtin_backends()
    if config.type not in _BACKEND_FACTORIES:
        raise ValueError(f"Unknown backend type '{config.type}'. Registered types: {sorted(_BACKEND_FACTORIES.keys())}")
    factory = _BACKEND_FACTORIES[config.type]
    try:
        return factory(**config.options)
    except TypeError as exc:
        raise ValueError(
            f"Invalid options for backend type {config.type!r}: {exc}. "
            f"Provided options: {sorted(config.options.keys())}"
        ) from exc


class Registry:
    """Manages named backends: lazy construction, connection, and teardown.

    :param config: Optional configuration.
    """

    def __init__(self, config: RegistryConfig | None = None) -> None:
        self._config = config or RegistryConfig()
        self._backends: dict[str, RemoteStorage] = {}

    def __repr__(self) -> str:
        names = sorted(self._config.backends.keys())
        return f"Registry(backends={names!r})"

    def get_backend(self, name: str) -> RemoteStorage:
        """Get a connected backend by its configured name.

        The first call constructs and connects the backend; later calls reuse it.

        :raises KeyError: If no backend with this name is configured.
        """
        if name not in self._config.backends:
            available = sorted(self._config.backends.keys())
            raise KeyError(f"Unknown backend '{name}'. Available backends: {available}")
        if name not in self._backends:
            backend = create_backend(self._config.backends[name])
            backend.connect()
            log.debug("Backend %r (%s) connected", name, backend.kind)
            self._backends[name] = backend
        return self._backends[name]

    def close(self) -> None:
        """Close all connected backends."""
        for backend in self._backends.values():
            backend.close()
        self._backends.clear()

    def __enter__(self) -> Registry:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
