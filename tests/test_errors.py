"""Tests for the error hierarchy."""

from __future__ import annotations

import pytest

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


class TestBaseError:
    def test_default_attributes(self) -> None:
        e = BackupStorageError("boom")
        assert e.path is None
        assert e.backend is None

    def test_with_attributes(self) -> None:
        e = BackupStorageError("boom", path="shadow/a.bin", backend="sftp")
        assert e.path == "shadow/a.bin"
        assert e.backend == "sftp"

    def test_str_plain(self) -> None:
        assert str(BackupStorageError("boom")) == "boom"

    def test_str_with_context(self) -> None:
        e = NotFound("missing", path="a.txt", backend="sftp")
        assert str(e) == "missing | path='a.txt' | backend='sftp'"

    def test_repr(self) -> None:
        e = DeleteError("partial", path="dir")
        assert repr(e) == "DeleteError('partial', path='dir')"


class TestHierarchy:
    @pytest.mark.parametrize(
        "cls",
        [
            CredentialError,
            ConnectError,
            InvalidPath,
            NotFound,
            PermissionDenied,
            StatError,
            DeleteError,
            WalkError,
            OpenError,
            CreateError,
            CopyError,
        ],
    )
    def test_is_backup_storage_error(self, cls: type[BackupStorageError]) -> None:
        assert issubclass(cls, BackupStorageError)

    def test_credential_errors(self) -> None:
        assert issubclass(CredentialReadError, CredentialError)
        assert issubclass(CredentialParseError, CredentialError)

    def test_connection_errors(self) -> None:
        assert issubclass(SessionOpenError, ConnectError)
        assert issubclass(NotConnected, ConnectError)

    def test_not_builtin_connection_error(self) -> None:
        assert not issubclass(ConnectError, ConnectionError)

    def test_catch_all(self) -> None:
        with pytest.raises(BackupStorageError):
            raise CopyError("broken pipe", path="x")
