from __future__ import annotations

import re
from pathlib import Path

from .env import read_env, read_env_path

LIBRARY_DIR_ENV = "FOLIO_LIBRARY_DIR"
ASSET_BASE_URL_ENV = "FOLIO_ASSET_BASE_URL"
DEFAULT_LIBRARY_DIR = Path(__file__).resolve().parent.parent / "library"
EPUB_SUFFIX = ".epub"
BOOK_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")


def library_dir() -> Path:
    return read_env_path(LIBRARY_DIR_ENV, DEFAULT_LIBRARY_DIR)


def asset_base_url() -> str:
    return (read_env(ASSET_BASE_URL_ENV) or "").rstrip("/")


def is_valid_book_id(book_id: str) -> bool:
    return bool(BOOK_ID_RE.match(book_id or ""))


def epub_path(base: Path, book_id: str) -> Path:
    if not is_valid_book_id(book_id):
        raise ValueError(f"invalid book id: {book_id!r}")
    return base / f"{book_id}{EPUB_SUFFIX}"
