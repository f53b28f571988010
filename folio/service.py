from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path
from typing import Callable, Union

from .archive import open_archive
from .assets import extract_asset
from .errors import AssetUnresolvable, EpubError
from .models import Asset, ChapterFragment
from .package import load_package
from .render import render_chapter

logger = logging.getLogger("folio.service")

ArchivePath = Union[str, Path]


def asset_url_builder(book_id: str, base_url: str = "") -> Callable[[str], str]:
    prefix = f"{base_url.rstrip('/')}/api/books/{urllib.parse.quote(str(book_id), safe='')}/asset?path="

    def build(resolved_path: str) -> str:
        return prefix + urllib.parse.quote(resolved_path, safe="")

    return build


def list_chapters(archive_path: ArchivePath) -> list[str]:
    try:
        with open_archive(archive_path) as handle:
            return list(load_package(handle).spine)
    except EpubError as exc:
        logger.warning("listing chapters of %s failed: %s", archive_path, exc)
        raise


def get_chapter(
    archive_path: ArchivePath,
    book_id: str,
    chapter_index: int = 0,
    base_url: str = "",
) -> ChapterFragment:
    try:
        with open_archive(archive_path) as handle:
            package = load_package(handle)
            return render_chapter(handle, package, chapter_index, asset_url_builder(book_id, base_url))
    except EpubError as exc:
        logger.warning("chapter %s of %s failed: %s", chapter_index, archive_path, exc)
        raise


def get_asset(archive_path: ArchivePath, path: str) -> Asset:
    if not (path or "").strip():
        raise AssetUnresolvable("asset path is empty")
    try:
        with open_archive(archive_path) as handle:
            # A book without a usable container/package is rejected before any asset read.
            load_package(handle)
            return extract_asset(handle, path)
    except EpubError as exc:
        logger.warning("asset %r of %s failed: %s", path, archive_path, exc)
        raise
