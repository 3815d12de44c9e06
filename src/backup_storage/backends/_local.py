"""Local filesystem backend built on the standard library."""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from backup_storage._backend import RemoteStorage
from backup_storage._errors import (
    BackupStorageError,
    ConnectError,
    CopyError,
    CreateError,
    DeleteError,
    InvalidPath,
    NotConnected,
    NotFound,
    OpenError,
    PermissionDenied,
    StatError,
    WalkError,
)
from backup_storage._models import RemoteFile
from backup_storage._path import normalize_key

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from backup_storage._types import Visitor, WritableContent

log = logging.getLogger(__name__)


class LocalBackend(RemoteStorage):
    """Local filesystem backend using only the Python standard library.

    :param root: Path to the root directory on the local filesystem.
    """

    def __init__(self, root: str) -> None:
        self._root = Path(root).expanduser().resolve()
        self._connected = False

    def __repr__(self) -> str:
        return f"LocalBackend(root={str(self._root)!r})"

    @property
    def kind(self) -> str:
        return "local"

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        """Create the root directory if needed and mark the backend usable."""
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConnectError(f"Cannot prepare root {self._root}: {exc}", backend=self.kind) from None
        self._connected = True

    def close(self) -> None:
        self._connected = False

    # region: path safety
    def _resolve(self, key: str) -> Path:
        """Resolve a key to an absolute path within root.

        Safety: ``.resolve()`` follows symlinks to their real target, and
        ``relative_to(self._root)`` then rejects any path that escapes the
        root, including symlinks pointing outside it.

        :raises NotConnected: If ``connect()`` has not been called.
        :raises InvalidPath: If the resolved path escapes the root.
        """
        if not self._connected:
            raise NotConnected("Local backend is not connected; call connect() first", backend=self.kind)
        resolved = (self._root / normalize_key(key)).resolve()
        try:
            resolved.relative_to(self._root)
        except ValueError:
            raise InvalidPath(f"Path escapes root directory: {key}", path=key, backend=self.kind) from None
        return resolved

    def _require_file_path(self, key: str) -> Path:
        full = self._resolve(key)
        if full == self._root:
            raise InvalidPath("Key must not resolve to the backend root", path=key, backend=self.kind)
        return full

    def _entry_path(self, key: str) -> Path:
        """Path naming the entry itself: only the parent is resolved, a final symlink is kept.

        :raises InvalidPath: If the key is the root or its parent escapes the root.
        """
        rel = normalize_key(key)
        if not rel:
            raise InvalidPath("Key must not resolve to the backend root", path=key, backend=self.kind)
        lexical = self._root / rel
        parent = self._resolve(lexical.parent.relative_to(self._root).as_posix())
        return parent / lexical.name

    # endregion

    # region: helpers
    def _map_error(self, key: str, exc: OSError, error: type[BackupStorageError]) -> BackupStorageError:
        if isinstance(exc, FileNotFoundError):
            return NotFound(f"Not found: {key}", path=key, backend=self.kind)
        if isinstance(exc, PermissionError):
            return PermissionDenied(f"Permission denied: {key}", path=key, backend=self.kind)
        return error(str(exc), path=key, backend=self.kind)

    @staticmethod
    def _to_remote_file(name: str, st: os.stat_result) -> RemoteFile:
        return RemoteFile(
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            name=name,
        )

    # endregion

    def stat_file(self, key: str) -> RemoteFile:
        full = self._resolve(key)
        try:
            st = full.stat()
        except OSError as exc:
            raise self._map_error(key, exc, StatError) from None
        return self._to_remote_file(full.name, st)

    # region: delete operations
    def delete_file(self, key: str) -> None:
        full = self._entry_path(key)
        try:
            st = full.lstat()
        except OSError as exc:
            raise self._map_error(key, exc, StatError) from None
        if not stat.S_ISDIR(st.st_mode):
            try:
                full.unlink()
            except OSError as exc:
                raise self._map_error(key, exc, DeleteError) from None
            return

        failures: list[OSError] = []
        self._remove_tree(full, failures)
        if failures:
            first = failures[0]
            raise DeleteError(
                f"Recursive delete incomplete, {len(failures)} failure(s); first: {first}",
                path=key,
                backend=self.kind,
            ) from first

    def _remove_tree(self, directory: Path, failures: list[OSError]) -> None:
        # Removals are deferred and run on exit even when the listing fails.
        with contextlib.ExitStack() as deferred:
            deferred.callback(self._attempt_removal, os.rmdir, directory, failures)
            try:
                with os.scandir(directory) as it:
                    entries = list(it)
            except OSError as exc:
                log.warning("Cannot list %s for deletion: %s", directory, exc)
                failures.append(exc)
                return
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    self._remove_tree(Path(entry.path), failures)
                else:
                    deferred.callback(self._attempt_removal, os.unlink, Path(entry.path), failures)

    @staticmethod
    def _attempt_removal(remove: Callable[[Path], object], path: Path, failures: list[OSError]) -> None:
        try:
            remove(path)
        except OSError as exc:
            log.warning("Cannot remove %s: %s", path, exc)
            failures.append(exc)

    # endregion

    # region: walking
    def walk(self, sub_path: str, *, recursive: bool, visit: Visitor) -> None:
        full = self._resolve(sub_path)
        entries = self._iter_tree(full, full, sub_path) if recursive else self._iter_flat(full, sub_path)
        for remote_file in entries:
            visit(remote_file)

    def _scandir(self, directory: Path, key: str) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as exc:
            raise self._map_error(key, exc, WalkError) from None

    @staticmethod
    def _entry_stat(entry: os.DirEntry[str]) -> os.stat_result | None:
        try:
            return entry.stat(follow_symlinks=False)
        except OSError:
            return None

    def _iter_flat(self, directory: Path, key: str) -> Iterator[RemoteFile]:
        for entry in self._scandir(directory, key):
            st = self._entry_stat(entry)
            if st is not None:
                yield self._to_remote_file(entry.name, st)

    def _iter_tree(self, directory: Path, start: Path, key: str) -> Iterator[RemoteFile]:
        for entry in self._scandir(directory, key):
            if entry.is_dir(follow_symlinks=False):
                yield from self._iter_tree(Path(entry.path), start, key)
            else:
                st = self._entry_stat(entry)
                if st is not None:
                    rel = Path(entry.path).relative_to(start).as_posix()
                    yield self._to_remote_file(rel, st)

    # endregion

    # region: read and write
    def get_file_reader(self, key: str) -> BinaryIO:
        full = self._require_file_path(key)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.warning("Could not create parent directories for %r: %s", key, exc)
        try:
            return open(full, "r+b")  # noqa: SIM115 -- caller owns the stream
        except OSError as exc:
            raise self._map_error(key, exc, OpenError) from None

    def put_file(self, key: str, source: WritableContent) -> None:
        full = self._require_file_path(key)
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.warning("Could not create parent directories for %r: %s", key, exc)
        try:
            target = open(full, "wb")  # noqa: SIM115
        except OSError as exc:
            raise self._map_error(key, exc, CreateError) from None
        try:
            with target:
                if isinstance(source, bytes):
                    target.write(source)
                else:
                    shutil.copyfileobj(source, target)
        except OSError as exc:
            raise self._map_error(key, exc, CopyError) from None

    # endregion
