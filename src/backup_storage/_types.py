"""Type aliases used throughout backup_storage."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, BinaryIO

from backup_storage._models import RemoteFile

WritableContent = BinaryIO | bytes
Visitor = Callable[[RemoteFile], Any]
