"""Tests for the RemoteFile model."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from backup_storage._models import RemoteFile

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestRemoteFile:
    def test_fields(self) -> None:
        rf = RemoteFile(size=42, last_modified=NOW, name="sub/b.txt")
        assert rf.size == 42
        assert rf.last_modified == NOW
        assert rf.name == "sub/b.txt"

    def test_frozen(self) -> None:
        rf = RemoteFile(size=1, last_modified=NOW, name="a.txt")
        with pytest.raises(dataclasses.FrozenInstanceError):
            rf.size = 2  # type: ignore[misc]

    def test_value_equality(self) -> None:
        assert RemoteFile(1, NOW, "a.txt") == RemoteFile(1, NOW, "a.txt")
        assert RemoteFile(1, NOW, "a.txt") != RemoteFile(2, NOW, "a.txt")
        assert len({RemoteFile(1, NOW, "a.txt"), RemoteFile(1, NOW, "a.txt")}) == 1

    def test_zero_size_allowed(self) -> None:
        assert RemoteFile(size=0, last_modified=NOW, name="empty").size == 0

    def test_negative_size_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            RemoteFile(size=-1, last_modified=NOW, name="bad")
