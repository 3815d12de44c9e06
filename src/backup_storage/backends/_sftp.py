"""SFTP backend using pure paramiko."""

from __future__ import annotations

import contextlib
import errno
import io
import logging
import os
import re
import shutil
import stat
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO

import paramiko
from paramiko.hostkeys import HostKeyEntry

from backup_storage._backend import RemoteStorage
from backup_storage._errors import (
    BackupStorageError,
    ConnectError,
    CopyError,
    CreateError,
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
from backup_storage._path import base_name, join_root, normalize_root, parent_of, relative_to

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from backup_storage._types import Visitor, WritableContent

log = logging.getLogger(__name__)

# RFC 4253 compliant chunk size for SFTP data transfer
_CHUNK_SIZE = 32768


# region: host key policy


class HostKeyPolicy(Enum):
    """Controls how unknown remote host keys are handled.

    :cvar STRICT: Reject unknown hosts (production default).
    :cvar TRUST_ON_FIRST_USE: Save on first connect, verify after.
    :cvar AUTO_ADD: Accept any key without verification (dev/testing ONLY).
    """

    STRICT = "strict"
    TRUST_ON_FIRST_USE = "tofu"
    AUTO_ADD = "auto"


# endregion

# region: private key handling

_NON_BASE64_PATTERN = re.compile(r"[^A-Za-z\d+/=]")
_PEM_SEPARATOR = "-----"

_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


def _sanitize_pem(pem_content: str) -> str:
    """Normalize PEM line separators (handles secret stores that flatten newlines to blanks)."""
    parts = pem_content.split(_PEM_SEPARATOR)
    if len(parts) != 5:
        raise ValueError("Invalid PEM structure (expected 5 parts).")

    payload = parts[2]
    non_base64_chars = list(set(re.findall(_NON_BASE64_PATTERN, payload)))
    if len(non_base64_chars) != 1:
        raise ValueError(f"Unexpected PEM characters: {non_base64_chars}")

    parts[2] = payload.replace(non_base64_chars[0], "\n")
    return _PEM_SEPARATOR.join(parts)


def read_key_file(key_path: str) -> str:
    """Read private key material from ``key_path``.

    :raises CredentialReadError: If the file cannot be read or decoded.
    """
    try:
        with open(os.path.expanduser(key_path), "rb") as f:
            raw = f.read()
    except OSError as exc:
        raise CredentialReadError(f"Cannot read private key: {exc.strerror or exc}", path=key_path) from None
    try:
        return raw.decode("ascii")
    except UnicodeDecodeError:
        raise CredentialParseError("Private key file is not ASCII key material", path=key_path) from None


def load_private_key(material: str, *, passphrase: str | None = None) -> paramiko.PKey:
    """Parse PEM or OpenSSH private key material into a paramiko key.

    RSA, ECDSA and Ed25519 keys are tried in that order.

    :raises CredentialParseError: If no supported key type accepts the material.
    """
    errors: list[str] = []
    for key_cls in _KEY_CLASSES:
        try:
            with io.StringIO(material) as buf:
                return key_cls.from_private_key(buf, password=passphrase)
        except paramiko.PasswordRequiredException:
            raise CredentialParseError("Private key is encrypted and no passphrase was given") from None
        except Exception as exc:  # noqa: BLE001 -- paramiko raises assorted types for foreign formats
            errors.append(f"{key_cls.__name__}: {exc}")
    raise CredentialParseError(f"Unsupported or malformed private key ({'; '.join(errors)})")


# endregion

# region: host key helpers

_HOST_KEYS_ENV = "SFTP_KNOWN_HOST_KEYS"


def _load_host_keys_from_string(ssh: paramiko.SSHClient, keys_content: str) -> None:
    """Parse a known_hosts-formatted string into an SSHClient's host keys."""
    for line in keys_content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        entry = HostKeyEntry.from_line(line)
        if entry is None or entry.key is None:
            continue
        for hostname in entry.hostnames:
            ssh.get_host_keys().add(hostname, entry.key.get_name(), entry.key)


# endregion


def _child(parent: str, name: str) -> str:
    return f"{parent.rstrip('/')}/{name}"


def _is_dir(attrs: Any) -> bool:
    return attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode)


class SFTPBackend(RemoteStorage):
    """SFTP backend using pure paramiko with public-key authentication.

    Construction performs no network I/O; call :meth:`connect` (or use the
    backend as a context manager) before issuing operations.

    :param address: SFTP server hostname (required, non-empty).
    :param username: SSH username.
    :param key_path: Path to the private key file.
    :param private_key: PEM/OpenSSH key material, as an alternative to ``key_path``.
    :param passphrase: Passphrase for an encrypted private key.
    :param root_path: Remote directory all keys are relative to (default: ``/``).
    :param port: SSH port (default: 22).
    :param host_key_policy: Host key verification policy, or its string value.
    :param known_host_keys: Known hosts string (code-level override).
    :param host_keys_path: Path to known_hosts file (default: ``~/.ssh/known_hosts``).
    :param timeout: SSH connection timeout in seconds.
    :param connect_kwargs: Extra kwargs passed to ``SSHClient.connect()``.
    """

    def __init__(
        self,
        address: str,
        *,
        username: str,
        key_path: str | None = None,
        private_key: str | None = None,
        passphrase: str | None = None,
        root_path: str = "/",
        port: int = 22,
        host_key_policy: HostKeyPolicy | str = HostKeyPolicy.STRICT,
        known_host_keys: str | None = None,
        host_keys_path: str | None = None,
        timeout: float = 10,
        connect_kwargs: dict[str, Any] | None = None,
    ) -> None:
        if not address or not address.strip():
            raise ValueError("address must be a non-empty string")
        if (key_path is None) == (private_key is None):
            raise ValueError("exactly one of key_path or private_key must be given")
        self._address = address
        self._port = port
        self._username = username
        self._key_path = key_path
        self._private_key = private_key
        self._passphrase = passphrase
        self._root = normalize_root(root_path)
        self._host_key_policy = HostKeyPolicy(host_key_policy)
        self._host_keys_path = host_keys_path
        self._timeout = timeout
        self._connect_kwargs = connect_kwargs or {}
        self._resolved_host_keys = self._resolve_host_keys(known_host_keys)

        self._ssh_client: paramiko.SSHClient | None = None
        self._sftp_client: paramiko.SFTPClient | None = None
        self._known_dirs: set[str] = set()

    def __repr__(self) -> str:
        return f"SFTPBackend(address={self._address!r}, port={self._port}, root_path={self._root!r})"

    @property
    def kind(self) -> str:
        return "sftp"

    @property
    def root_path(self) -> str:
        """Normalized remote root."""
        return self._root

    @property
    def connected(self) -> bool:
        return self._sftp_client is not None

    # region: connection

    @property
    def _sftp(self) -> paramiko.SFTPClient:
        if self._sftp_client is None:
            raise NotConnected(
                f"No SFTP session to {self._address}; call connect() first",
                backend=self.kind,
            )
        return self._sftp_client

    def connect(self) -> None:
        """Load the private key, open the SSH session and the SFTP channel.

        Any session already open is closed first. There is no retry.

        :raises CredentialReadError: If the key file cannot be read.
        :raises CredentialParseError: If the key cannot be parsed.
        :raises ConnectError: If the SSH session cannot be established.
        :raises SessionOpenError: If the SFTP channel cannot be opened.
        """
        self._close_clients()

        pkey = self._load_key()
        ssh = self._create_ssh_client()

        # Only the configured key is offered unless connect_kwargs says otherwise.
        kwargs: dict[str, Any] = {"allow_agent": False, "look_for_keys": False, **self._connect_kwargs}
        log.info("Connecting to %s:%d as %s", self._address, self._port, self._username)
        try:
            ssh.connect(
                hostname=self._address,
                port=self._port,
                username=self._username,
                pkey=pkey,
                timeout=self._timeout,
                banner_timeout=self._timeout,
                auth_timeout=self._timeout,
                channel_timeout=self._timeout,
                **kwargs,
            )
        except (paramiko.SSHException, OSError, EOFError) as exc:
            ssh.close()
            raise ConnectError(
                f"Cannot connect to {self._address}:{self._port}: {exc}",
                backend=self.kind,
            ) from None

        if self._host_key_policy == HostKeyPolicy.TRUST_ON_FIRST_USE and not self._resolved_host_keys:
            self._save_host_keys(ssh)

        try:
            sftp = ssh.open_sftp()
        except (paramiko.SSHException, OSError, EOFError) as exc:
            ssh.close()
            raise SessionOpenError(
                f"Cannot open SFTP channel on {self._address}: {exc}",
                backend=self.kind,
            ) from None

        self._ssh_client = ssh
        self._sftp_client = sftp
        self._known_dirs = set()
        log.info("SFTP session established (root=%s).", self._root)

    def _load_key(self) -> paramiko.PKey:
        if self._key_path is not None:
            material = read_key_file(self._key_path)
            source = self._key_path
        else:
            assert self._private_key is not None
            try:
                material = _sanitize_pem(self._private_key)
            except ValueError as exc:
                raise CredentialParseError(f"Malformed private key: {exc}") from None
            source = None
        try:
            return load_private_key(material, passphrase=self._passphrase)
        except CredentialParseError as exc:
            exc.path = source
            raise

    def _create_ssh_client(self) -> paramiko.SSHClient:
        """Create and configure an SSHClient with host key policy."""
        ssh = paramiko.SSHClient()

        if self._resolved_host_keys:
            _load_host_keys_from_string(ssh, self._resolved_host_keys)
        elif self._host_key_policy in (HostKeyPolicy.STRICT, HostKeyPolicy.TRUST_ON_FIRST_USE):
            keys_path = self._known_hosts_file()
            if os.path.isfile(keys_path):
                ssh.load_host_keys(keys_path)

        if self._host_key_policy == HostKeyPolicy.TRUST_ON_FIRST_USE:
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        elif self._host_key_policy == HostKeyPolicy.AUTO_ADD:
            log.warning("AUTO_ADD host key policy -- host identity of %s is NOT verified.", self._address)
            ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        else:
            ssh.set_missing_host_key_policy(paramiko.RejectPolicy())

        return ssh

    def _known_hosts_file(self) -> str:
        return self._host_keys_path or os.path.expanduser("~/.ssh/known_hosts")

    def _save_host_keys(self, ssh: paramiko.SSHClient) -> None:
        keys_path = self._known_hosts_file()
        try:
            ssh.save_host_keys(keys_path)
        except OSError as exc:
            log.warning("Could not record host key of %s in %s: %s", self._address, keys_path, exc)

    def _resolve_host_keys(self, direct: str | None) -> str | None:
        """Resolve known host keys: code > env > file fallback."""
        if direct:
            return direct
        if val_env := os.environ.get(_HOST_KEYS_ENV):
            return val_env
        return None

    def _close_clients(self) -> None:
        """Close SFTP and SSH clients if open."""
        if self._sftp_client is not None:
            with contextlib.suppress(Exception):
                self._sftp_client.close()
            self._sftp_client = None
        if self._ssh_client is not None:
            with contextlib.suppress(Exception):
                self._ssh_client.close()
            self._ssh_client = None
            log.info("SFTP session to %s closed.", self._address)
        self._known_dirs.clear()

    def close(self) -> None:
        self._close_clients()

    # endregion

    # region: path helpers

    def _remote_path(self, key: str) -> str:
        return join_root(self._root, key)

    def _require_file_path(self, key: str) -> str:
        sftp_path = self._remote_path(key)
        if sftp_path == self._root:
            raise InvalidPath("Key must not resolve to the backend root", path=key, backend=self.kind)
        return sftp_path

    def _ensure_parent_dirs(self, sftp_path: str, key: str) -> None:
        """Create the parent directory chain of ``sftp_path``; failures are logged, not raised."""
        parent = parent_of(sftp_path)
        if parent in self._known_dirs:
            log.debug("Parent %s already known to exist", parent)
            return
        try:
            self._make_dirs(parent)
        except OSError as exc:
            log.warning("Could not create parent directories for %r: %s", key, exc)

    def _make_dirs(self, sftp_dir: str) -> None:
        """Stat from the deepest directory upwards, then create the missing ones top-down.

        Ancestors above the first existing directory are never touched.
        """
        missing: list[str] = []
        current = sftp_dir
        while current != "/" and current not in self._known_dirs:
            try:
                attrs = self._sftp.stat(current)
            except FileNotFoundError:
                missing.append(current)
                current = parent_of(current)
                continue
            if not _is_dir(attrs):
                raise NotADirectoryError(errno.ENOTDIR, "Not a directory", current)
            self._known_dirs.add(current)
            break
        for directory in reversed(missing):
            self._sftp.mkdir(directory)
            log.debug("Created directory %s", directory)
            self._known_dirs.add(directory)

    def _forget_dirs(self, sftp_dir: str) -> None:
        prefix = sftp_dir.rstrip("/") + "/"
        self._known_dirs = {d for d in self._known_dirs if d != sftp_dir and not d.startswith(prefix)}

    # endregion

    # region: error mapping

    @contextmanager
    def _errors(self, path: str, error: type[BackupStorageError]) -> Iterator[None]:
        """Map paramiko/OS exceptions to backup_storage errors.

        :param error: Class raised for failures that are neither absence nor denial.
        """
        try:
            yield
        except BackupStorageError:
            raise
        except FileNotFoundError:
            raise NotFound(f"Not found: {path}", path=path, backend=self.kind) from None
        except PermissionError:
            raise PermissionDenied(f"Permission denied: {path}", path=path, backend=self.kind) from None
        except OSError as exc:
            raise error(str(exc) or type(exc).__name__, path=path, backend=self.kind) from None
        except (paramiko.SSHException, EOFError) as exc:
            raise ConnectError(f"SFTP session failed: {exc}", path=path, backend=self.kind) from None

    # endregion

    # region: helpers

    @staticmethod
    def _to_remote_file(name: str, attrs: Any) -> RemoteFile:
        """Convert paramiko SFTPAttributes to a RemoteFile."""
        mtime = attrs.st_mtime
        if mtime is not None:
            modified = datetime.fromtimestamp(mtime, tz=timezone.utc)
        else:
            modified = datetime.now(tz=timezone.utc)
        return RemoteFile(size=int(attrs.st_size or 0), last_modified=modified, name=name)

    def _listdir(self, sftp_dir: str, key: str) -> list[Any]:
        with self._errors(key, WalkError):
            return self._sftp.listdir_attr(sftp_dir)

    # endregion

    # region: metadata

    def stat_file(self, key: str) -> RemoteFile:
        sftp_path = self._remote_path(key)
        with self._errors(key, StatError):
            attrs = self._sftp.stat(sftp_path)
        return self._to_remote_file(base_name(sftp_path), attrs)

    # endregion

    # region: delete operations

    def delete_file(self, key: str) -> None:
        sftp_path = self._require_file_path(key)
        with self._errors(key, StatError):
            attrs = self._sftp.lstat(sftp_path)
        if _is_dir(attrs):
            self._delete_directory(sftp_path, key)
            return
        with self._errors(key, DeleteError):
            self._sftp.remove(sftp_path)
        log.debug("Removed %s", sftp_path)

    def _delete_directory(self, sftp_path: str, key: str) -> None:
        """Remove a directory tree, attempting every removal before reporting the first failure."""
        failures: list[OSError] = []
        with self._errors(key, DeleteError):
            self._remove_tree(sftp_path, failures)
        self._forget_dirs(sftp_path)
        if failures:
            first = failures[0]
            raise DeleteError(
                f"Recursive delete incomplete, {len(failures)} failure(s); first: {first}",
                path=key,
                backend=self.kind,
            ) from first

    def _remove_tree(self, sftp_dir: str, failures: list[OSError]) -> None:
        # Removals are deferred and run on exit even when the listing fails.
        with contextlib.ExitStack() as deferred:
            deferred.callback(self._attempt_removal, self._sftp.rmdir, sftp_dir, failures)
            try:
                entries = self._sftp.listdir_attr(sftp_dir)
            except OSError as exc:
                log.warning("Cannot list %s for deletion: %s", sftp_dir, exc)
                failures.append(exc)
                return
            for attrs in entries:
                child = _child(sftp_dir, attrs.filename)
                if _is_dir(attrs):
                    self._remove_tree(child, failures)
                else:
                    deferred.callback(self._attempt_removal, self._sftp.remove, child, failures)

    @staticmethod
    def _attempt_removal(remove: Callable[[str], object], sftp_path: str, failures: list[OSError]) -> None:
        try:
            remove(sftp_path)
        except OSError as exc:
            log.warning("Cannot remove %s: %s", sftp_path, exc)
            failures.append(exc)
        else:
            log.debug("Removed %s", sftp_path)

    # endregion

    # region: walking

    def walk(self, sub_path: str, *, recursive: bool, visit: Visitor) -> None:
        sftp_dir = self._remote_path(sub_path)
        entries = self._iter_tree(sftp_dir, sftp_dir, sub_path) if recursive else self._iter_flat(sftp_dir, sub_path)
        for remote_file in entries:
            visit(remote_file)

    def _iter_flat(self, sftp_dir: str, key: str) -> Iterator[RemoteFile]:
        for attrs in self._listdir(sftp_dir, key):
            yield self._to_remote_file(attrs.filename, attrs)

    def _iter_tree(self, sftp_dir: str, start: str, key: str) -> Iterator[RemoteFile]:
        """Depth-first, in listing order; yields non-directories named relative to ``start``."""
        for attrs in self._listdir(sftp_dir, key):
            if attrs.st_mode is None:
                continue
            child = _child(sftp_dir, attrs.filename)
            if _is_dir(attrs):
                yield from self._iter_tree(child, start, key)
            else:
                yield self._to_remote_file(relative_to(start, child), attrs)

    # endregion

    # region: read and write

    def get_file_reader(self, key: str) -> BinaryIO:
        sftp_path = self._require_file_path(key)
        with self._errors(key, OpenError):
            self._ensure_parent_dirs(sftp_path, key)
            return self._sftp.open(sftp_path, "r+")  # type: ignore[return-value]

    def put_file(self, key: str, source: WritableContent) -> None:
        sftp_path = self._require_file_path(key)
        with self._errors(key, CreateError):
            self._ensure_parent_dirs(sftp_path, key)
            remote = self._sftp.open(sftp_path, "w")
        with self._errors(key, CopyError), remote:
            if isinstance(source, bytes):
                remote.write(source)
            else:
                shutil.copyfileobj(source, remote, _CHUNK_SIZE)
        log.debug("Uploaded %s", sftp_path)

    # endregion
