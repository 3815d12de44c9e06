"""Key normalization and root-relative path arithmetic for remote paths."""

from __future__ import annotations

from backup_storage._errors import InvalidPath


def normalize_key(raw: str) -> str:
    """Normalize a caller-supplied key into a clean relative path.

    Backslashes become forward slashes, empty and ``.`` segments are dropped.
    An empty result designates the root itself.

    :raises InvalidPath: If the key contains a null byte or a ``..`` segment.
    """
    if "\0" in raw:
        raise InvalidPath("Path contains null byte", path=raw)
    p = raw.replace("\\", "/")
    parts: list[str] = []
    for segment in p.split("/"):
        if segment == "" or segment == ".":
            continue
        if segment == "..":
            raise InvalidPath("Path contains '..' segment", path=raw)
        parts.append(segment)
    return "/".join(parts)


def normalize_root(raw: str) -> str:
    """Normalize a configured remote root to an absolute path without trailing slash."""
    key = normalize_key(raw)
    return f"/{key}" if key else "/"


def join_root(root: str, key: str) -> str:
    """Resolve ``key`` against an already-normalized ``root``.

    Example: ``join_root("/backups", "shadow/a.txt")`` returns
    ``"/backups/shadow/a.txt"`` and ``join_root("/backups", "")`` returns
    ``"/backups"``.
    """
    rel = normalize_key(key)
    if not rel:
        return root
    if root == "/":
        return f"/{rel}"
    return f"{root}/{rel}"


def relative_to(base: str, path: str) -> str:
    """Return ``path`` relative to the directory ``base``.

    :raises InvalidPath: If ``path`` is not located under ``base``.
    """
    if path == base:
        return ""
    prefix = base if base.endswith("/") else base + "/"
    if not path.startswith(prefix):
        raise InvalidPath(f"Path {path!r} is not under {base!r}", path=path)
    return path[len(prefix) :]


def parent_of(path: str) -> str:
    """Parent directory of an absolute remote path (``"/"`` for top-level entries)."""
    head = path.rsplit("/", 1)[0]
    return head or "/"


def base_name(path: str) -> str:
    """Final component of a remote path."""
    return path.rsplit("/", 1)[-1]
