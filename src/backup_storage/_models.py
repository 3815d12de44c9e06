"""Immutable metadata models."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclasses.dataclass(frozen=True)
class RemoteFile:
    """Immutable snapshot of one remote directory entry.

    The meaning of ``name`` depends on where the snapshot came from: the base
    name for ``stat_file`` and flat walks, the path relative to the walk's
    start directory for recursive walks.

    :param size: Entry size in bytes.
    :param last_modified: Last modification time (UTC).
    :param name: Entry name, see above.
    """

    size: int
    last_modified: datetime
    name: str

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"size must be non-negative, got {self.size}")
