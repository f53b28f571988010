from __future__ import annotations

from pathlib import PurePosixPath

from .archive import ArchiveHandle
from .errors import AssetReadFailed, AssetUnresolvable, EntryNotFound, EntryReadFailed
from .models import Asset
from .paths import resolve

DEFAULT_MEDIA_TYPE = "application/octet-stream"

_MEDIA_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".css": "text/css",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".xhtml": "application/xhtml+xml",
    ".html": "text/html",
    ".htm": "text/html",
    ".ncx": "application/x-dtbncx+xml",
    ".opf": "application/oebps-package+xml",
    ".js": "text/javascript",
    ".xml": "application/xml",
}


def guess_media_type(path: str) -> str:
    suffix = PurePosixPath(path or "").suffix.lower()
    return _MEDIA_TYPES.get(suffix, DEFAULT_MEDIA_TYPE)


def extract_asset(handle: ArchiveHandle, nominal_path: str) -> Asset:
    # Asset paths are already archive-internal, so there is no directory-relative retry.
    real_path = resolve(nominal_path, handle.entries)
    if real_path is None:
        raise AssetUnresolvable(f"asset not found in zip: {nominal_path}")
    try:
        content = handle.read(real_path)
    except (EntryNotFound, EntryReadFailed) as exc:
        raise AssetReadFailed(f"failed to read asset: {real_path}") from exc
    return Asset(path=real_path, content=content, media_type=guess_media_type(real_path))
