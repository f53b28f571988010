from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PackageDocument:
    path: str
    directory: str
    manifest: dict[str, str] = field(default_factory=dict)
    spine: list[str] = field(default_factory=list)
    # idrefs skipped because the manifest has no such item, in document order.
    dropped_itemrefs: list[str] = field(default_factory=list)

    @property
    def total_chapters(self) -> int:
        return len(self.spine)


@dataclass(frozen=True)
class ChapterFragment:
    html: str
    chapter_index: int
    total_chapters: int


@dataclass(frozen=True)
class Asset:
    path: str
    content: bytes
    media_type: str
