"""Uniform storage backends (SFTP, local disk) for backup/restore pipelines."""

from backup_storage._backend import RemoteStorage
from backup_storage._config import BackendConfig, RegistryConfig
from backup_storage._errors import (
    BackupStorageError,
    ConnectError,
    CopyError,
    CreateError,
    CredentialError,
    CredentialParseError,
    CredentialReadError,
    DeleteError,
    InvalidPath,
    NotConnected,
    NotFound,
    OpenError,
    PermissionDenied,
    SessionOpenError,
    StatError,
    WalkError,
)
from backup_storage._models import RemoteFile
from backup_storage._registry import Registry, create_backend, register_backend

__version__ = "0.1.0"

__all__ = [
    # Core
    "RemoteStorage",
    "RemoteFile",
    "Registry",
    "create_backend",
    "register_backend",
    # Config
    "BackendConfig",
    "RegistryConfig",
    # Errors
    "BackupStorageError",
    "CredentialError",
    "CredentialReadError",
    "CredentialParseError",
    "ConnectError",
    "SessionOpenError",
    "NotConnected",
    "InvalidPath",
    "NotFound",
    "PermissionDenied",
    "StatError",
    "DeleteError",
    "WalkError",
    "OpenError",
    "CreateError",
    "CopyError",
    # Version
    "__version__",
]
