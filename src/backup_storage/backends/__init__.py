"""Backend implementations."""

from backup_storage.backends._local import LocalBackend
from backup_storage.backends._sftp import HostKeyPolicy, SFTPBackend

__all__ = ["HostKeyPolicy", "LocalBackend", "SFTPBackend"]
