"""RemoteStorage abstract base class: the backend contract."""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from types import TracebackType

    from backup_storage._models import RemoteFile
    from backup_storage._types import Visitor, WritableContent


class RemoteStorage(abc.ABC):
    """Abstract base class for all storage backends.

    Keys are ``/``-separated paths relative to the backend's configured root.
    Backend-native exceptions must never leak; they must be mapped to
    ``backup_storage`` errors. Instances hold a single session and are not
    safe for concurrent use.
    """

    @property
    @abc.abstractmethod
    def kind(self) -> str:
        """Backend type identifier (e.g. ``'sftp'``, ``'local'``)."""

    @abc.abstractmethod
    def connect(self) -> None:
        """Open the backend session, replacing any session already open.

        :raises CredentialError: If the configured credential is unusable.
        :raises ConnectError: If the session cannot be established.
        """

    @abc.abstractmethod
    def stat_file(self, key: str) -> RemoteFile:
        """Return metadata for the entry at ``key``.

        :raises NotFound: If the entry does not exist.
        """

    @abc.abstractmethod
    def delete_file(self, key: str) -> None:
        """Delete the file at ``key``, or the whole tree if ``key`` is a directory.

        Directory removal is best-effort: every removal that can be attempted
        is attempted, then the first failure is raised.

        :raises NotFound: If the entry does not exist.
        :raises DeleteError: If any listing or removal failed.
        """

    @abc.abstractmethod
    def walk(self, sub_path: str, *, recursive: bool, visit: Visitor) -> None:
        """Call ``visit`` for each entry under ``sub_path``.

        :param recursive: If ``True``, descend into subdirectories and name
            files relative to ``sub_path``; otherwise visit immediate children
            by their own names.
        :param visit: Callback receiving a ``RemoteFile``; an exception raised
            by it stops the walk and propagates unchanged.
        :raises WalkError: If the traversal itself fails.
        """

    @abc.abstractmethod
    def get_file_reader(self, key: str) -> BinaryIO:
        """Open ``key`` and return a binary stream positioned at its start.

        The caller owns the returned stream and must close it.

        :raises NotFound: If the file does not exist.
        :raises OpenError: If the file cannot be opened.
        """

    @abc.abstractmethod
    def put_file(self, key: str, source: WritableContent) -> None:
        """Create or truncate ``key`` and copy ``source`` into it.

        Missing parent directories are created.

        :raises CreateError: If the file cannot be created.
        :raises CopyError: If the transfer fails.
        """

    @property
    @abc.abstractmethod
    def connected(self) -> bool:
        """Whether a session is currently open."""

    def close(self) -> None:  # noqa: B027
        """Release the session. Default is a no-op."""

    def __enter__(self) -> RemoteStorage:
        if not self.connected:
            self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
