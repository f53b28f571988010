from __future__ import annotations


class EpubError(Exception):
    """Base class for every failure the reader engine reports."""


class ArchiveOpenFailed(EpubError):
    pass


class EntryNotFound(EpubError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep plain messages for the API.
        return str(self.args[0]) if self.args else ""


class EntryReadFailed(EpubError):
    pass


class StructureError(EpubError):
    """Container or package document is missing or unusable."""


class ContainerMissing(StructureError):
    pass


class RootfileMissing(StructureError):
    pass


class PackageMissing(StructureError):
    pass


class PackageMalformed(StructureError):
    pass


class ChapterError(EpubError):
    pass


class ChapterIndexOutOfRange(ChapterError, IndexError):
    pass


class ChapterEntryUnresolvable(ChapterError):
    pass


class ChapterReadFailed(ChapterError):
    pass


class AssetError(EpubError):
    pass


class AssetUnresolvable(AssetError):
    pass


class AssetReadFailed(AssetError):
    pass
