"""Normalized error hierarchy for backup_storage."""

from __future__ import annotations

from typing import Optional


class BackupStorageError(Exception):
    """Base class for all backup_storage errors.

    :param message: Human-readable error description.
    :param path: The key or remote path involved in the error, if any.
    :param backend: The backend kind involved, if any.
    """

    def __init__(self, message: str = "", *, path: Optional[str] = None, backend: Optional[str] = None) -> None:
        self.path = path
        self.backend = backend
        super().__init__(message)

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.path is not None:
            parts.append(f"path={self.path!r}")
        if self.backend is not None:
            parts.append(f"backend={self.backend!r}")
        return " | ".join(parts) if len(parts) > 1 else parts[0]

    def __repr__(self) -> str:
        cls = type(self).__name__
        args = [repr(super().__str__())]
        if self.path is not None:
            args.append(f"path={self.path!r}")
        if self.backend is not None:
            args.append(f"backend={self.backend!r}")
        return f"{cls}({', '.join(args)})"


# region: connection errors


class CredentialError(BackupStorageError):
    """Raised when the private key credential cannot be used."""


class CredentialReadError(CredentialError):
    """Raised when the private key file cannot be read."""


class CredentialParseError(CredentialError):
    """Raised when the private key material is malformed or unsupported."""


class ConnectError(BackupStorageError):
    """Raised when the remote host cannot be reached or refuses the session."""


class SessionOpenError(ConnectError):
    """Raised when the file-transfer channel cannot be opened over the session."""


class NotConnected(ConnectError):
    """Raised when an operation is issued before a successful ``connect()``."""


# endregion

# region: operation errors


class InvalidPath(BackupStorageError):
    """Raised for malformed or unsafe keys."""


class NotFound(BackupStorageError):
    """Raised when a remote entry does not exist."""


class PermissionDenied(BackupStorageError):
    """Raised when access is denied by the storage backend."""


class StatError(BackupStorageError):
    """Raised when a metadata query fails for a reason other than absence."""


class DeleteError(BackupStorageError):
    """Raised when a removal or a listing during recursive removal fails."""


class WalkError(BackupStorageError):
    """Raised when a directory traversal fails."""


class OpenError(BackupStorageError):
    """Raised when a remote file cannot be opened for reading."""


class CreateError(BackupStorageError):
    """Raised when a remote file cannot be created."""


class CopyError(BackupStorageError):
    """Raised when transferring bytes into a remote file fails."""


# endregion
