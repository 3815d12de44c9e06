"""Tests for key normalization and remote path arithmetic."""

from __future__ import annotations

import pytest

from backup_storage._errors import InvalidPath
from backup_storage._path import base_name, join_root, normalize_key, normalize_root, parent_of, relative_to


class TestNormalizeKey:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("a/b/c.txt", "a/b/c.txt"),
            ("/a/b", "a/b"),
            ("a//b///c", "a/b/c"),
            ("./a/./b/", "a/b"),
            ("a\\b\\c", "a/b/c"),
            ("", ""),
            ("/", ""),
            (".", ""),
        ],
    )
    def test_normalization(self, raw: str, expected: str) -> None:
        assert normalize_key(raw) == expected

    @pytest.mark.parametrize("raw", ["..", "a/../b", "../etc/passwd", "a\\..\\b"])
    def test_parent_segments_rejected(self, raw: str) -> None:
        with pytest.raises(InvalidPath) as exc_info:
            normalize_key(raw)
        assert exc_info.value.path == raw

    def test_null_byte_rejected(self) -> None:
        with pytest.raises(InvalidPath, match="null byte"):
            normalize_key("a\0b")

    def test_dots_inside_names_allowed(self) -> None:
        assert normalize_key("a/..hidden/b..c") == "a/..hidden/b..c"


class TestNormalizeRoot:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("/", "/"), ("", "/"), ("/backups", "/backups"), ("backups/", "/backups"), ("/srv//data/", "/srv/data")],
    )
    def test_normalization(self, raw: str, expected: str) -> None:
        assert normalize_root(raw) == expected


class TestJoinRoot:
    def test_join(self) -> None:
        assert join_root("/backups", "shadow/a.txt") == "/backups/shadow/a.txt"

    def test_join_empty_key_is_root(self) -> None:
        assert join_root("/backups", "") == "/backups"
        assert join_root("/", "") == "/"

    def test_join_at_filesystem_root(self) -> None:
        assert join_root("/", "a.txt") == "/a.txt"

    def test_join_normalizes_key(self) -> None:
        assert join_root("/r", "/x//y/") == "/r/x/y"


class TestRelativeTo:
    def test_child(self) -> None:
        assert relative_to("/r/start", "/r/start/sub/b.txt") == "sub/b.txt"

    def test_same_path(self) -> None:
        assert relative_to("/r", "/r") == ""

    def test_from_filesystem_root(self) -> None:
        assert relative_to("/", "/a/b") == "a/b"

    def test_sibling_prefix_is_not_child(self) -> None:
        with pytest.raises(InvalidPath):
            relative_to("/r/start", "/r/started/x")


class TestParentAndBaseName:
    @pytest.mark.parametrize(
        ("path", "parent"),
        [("/a/b/c.txt", "/a/b"), ("/a", "/"), ("/", "/")],
    )
    def test_parent_of(self, path: str, parent: str) -> None:
        assert parent_of(path) == parent

    def test_base_name(self) -> None:
        assert base_name("/a/b/c.txt") == "c.txt"
        assert base_name("/a") == "a"
