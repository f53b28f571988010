from __future__ import annotations

from pathlib import Path
from typing import Optional, Union
import zipfile

from .errors import ArchiveOpenFailed, EntryNotFound, EntryReadFailed


class ArchiveHandle:
    """Request-scoped handle on one EPUB container.

    Entry names are kept exactly as stored in the ZIP directory (case and
    separators untouched) and in the order the container lists them.
    """

    def __init__(self, path: Path, zf: zipfile.ZipFile) -> None:
        self.path = path
        self._zf: Optional[zipfile.ZipFile] = zf
        self._entries = tuple(zf.namelist())

    @property
    def entries(self) -> tuple[str, ...]:
        return self._entries

    @property
    def closed(self) -> bool:
        return self._zf is None

    def read(self, name: str) -> bytes:
        if self._zf is None:
            raise EntryReadFailed(f"archive already closed: {self.path}")
        try:
            return self._zf.read(name)
        except KeyError as exc:
            raise EntryNotFound(f"entry not found in archive: {name}") from exc
        except (OSError, RuntimeError, ValueError, zipfile.BadZipFile) as exc:
            raise EntryReadFailed(f"failed to read entry {name}: {exc}") from exc

    def close(self) -> None:
        if self._zf is None:
            return
        self._zf.close()
        self._zf = None

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


def open_archive(path: Union[str, Path]) -> ArchiveHandle:
    archive_path = Path(path)
    try:
        zf = zipfile.ZipFile(archive_path, "r")
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveOpenFailed(f"Cannot open epub: {archive_path}") from exc
    return ArchiveHandle(archive_path, zf)
