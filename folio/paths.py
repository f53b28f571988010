from __future__ import annotations

import re
from typing import Optional, Sequence

_LEADING_DOTS_RE = re.compile(r"^(?:\.{1,2}/|/)+")


def strip_leading_dots(path: str) -> str:
    """Drop leading "./", "../" and "/" segments; the rest is kept verbatim."""
    return _LEADING_DOTS_RE.sub("", path or "")


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def parent_dir(path: str) -> str:
    if "/" not in path:
        return ""
    return path.rsplit("/", 1)[0].strip("/")


def join_dir(directory: str, href: str) -> str:
    return f"{directory}/{href}" if directory else href


def resolve(nominal: str, entries: Sequence[str]) -> Optional[str]:
    """Reconcile a nominal resource path with a real archive entry.

    First match wins: exact name, then the name with backslashes turned into
    forward slashes, then any entry sharing the final path segment. Among
    basename matches the shortest full path is picked; equal lengths keep the
    archive's enumeration order. Returns None when nothing matches.
    """
    candidate = strip_leading_dots(nominal)
    if not candidate:
        return None

    names = set(entries)
    if candidate in names:
        return candidate

    normalized = strip_leading_dots(candidate.replace("\\", "/"))
    if normalized in names:
        return normalized

    name = basename(normalized)
    if not name:
        return None
    matches = [entry for entry in entries if basename(entry) == name]
    if not matches:
        return None
    # sorted() is stable, so equal lengths keep enumeration order.
    return sorted(matches, key=len)[0]
