"""ZIP archive adapter: builds the embedded blob and extracts it again."""

import io
import logging
import posixpath
import stat
import zipfile
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Set, Union

from .config import DEFAULT_FORMAT
from .errors import ContainerIOError, FormatError, NotFoundError, ValidationError
from .files import EPOCH, FileInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    """One file read back from an archive."""

    path: str
    info: FileInfo
    content: bytes


class Zipper:
    """Writes files into an in-memory ZIP archive under one namespace."""

    def __init__(
        self,
        namespace: str = DEFAULT_FORMAT.app_tag,
        compression: int = zipfile.ZIP_DEFLATED,
    ) -> None:
        """
        Initialize zipper.

        Args:
            namespace: Top-level segment every entry is stored under
            compression: ``zipfile`` compression method
        """
        self.namespace = namespace
        self._buffer = io.BytesIO()
        self._writer = zipfile.ZipFile(
            self._buffer, "w", compression, strict_timestamps=False
        )
        self._names: Set[str] = set()
        self._closed = False

    @property
    def names(self) -> List[str]:
        """Entry names written so far, sorted."""
        return sorted(self._names)

    def add(self, path: Union[str, Path]) -> int:
        """
        Add a file, or every file below a directory.

        Directory nodes are never stored, so empty directories leave no trace.

        Args:
            path: File or directory to add

        Returns:
            Number of files added

        Raises:
            ValidationError: If the archive is closed or the path escapes the namespace
            NotFoundError: If the path does not exist
            ContainerIOError: If a file cannot be read
        """
        if self._closed:
            raise ValidationError("Archive is already closed")

        path = Path(path)
        if not path.exists():
            raise NotFoundError(f"Path to embed not found: {path}")

        added = 0
        for file_path in self._iter_files(path):
            if self._add_file(file_path):
                added += 1

        if added == 0 and path.is_dir():
            logger.debug(f"Skipped {path}: no files below it")
        return added

    def close(self) -> None:
        if self._closed:
            return
        try:
            self._writer.close()
        except (OSError, ValueError) as e:
            raise ContainerIOError(f"Failed to finish archive: {e}") from e
        self._closed = True

    def to_bytes(self) -> bytes:
        """
        Get the finished archive.

        Raises:
            ValidationError: If the archive has not been closed yet
        """
        if not self._closed:
            raise ValidationError("Archive is not closed")
        return self._buffer.getvalue()

    def _iter_files(self, path: Path) -> Iterator[Path]:
        """Yield files below ``path`` in lexical order."""
        if not path.is_dir():
            yield path
            return
        for file_path in sorted(path.rglob("*"), key=lambda p: p.as_posix()):
            if file_path.is_file():
                yield file_path

    def _add_file(self, file_path: Path) -> bool:
        name = self.entry_name(file_path)
        if name in self._names:
            logger.debug(f"Skipped duplicate entry {name}")
            return False

        try:
            self._writer.write(file_path, arcname=name)
        except OSError as e:
            raise ContainerIOError(f"Failed to add {file_path}: {e}") from e

        self._names.add(name)
        logger.debug(f"Added {file_path} as {name}")
        return True

    def entry_name(self, file_path: Path) -> str:
        """
        Map a source path onto its archive entry name.

        The path is kept as given, made relative and re-rooted under the namespace.

        Raises:
            ValidationError: If the path contains a parent traversal
        """
        parts = [
            part
            for part in Path(file_path).parts
            if part not in (Path(file_path).anchor, "", ".")
        ]
        if ".." in parts:
            raise ValidationError(f"Parent traversal not allowed in {file_path}")
        return "/".join([self.namespace, *parts])

    def __enter__(self) -> "Zipper":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def extract_entries(blob: bytes) -> List[ArchiveEntry]:
    """
    Read every file entry of a ZIP blob into memory.

    Directory entries are skipped. Entries are returned in storage order.

    Args:
        blob: Archive bytes

    Returns:
        Extracted entries

    Raises:
        FormatError: If the blob is not a readable archive
    """
    entries: List[ArchiveEntry] = []
    try:
        with zipfile.ZipFile(io.BytesIO(blob)) as archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                content = archive.read(info)
                entries.append(
                    ArchiveEntry(
                        path=info.filename.replace("\\", "/"),
                        info=_file_info(info),
                        content=content,
                    )
                )
    except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
        raise FormatError(f"Corrupt archive region: {e}") from e

    logger.debug(f"Extracted {len(entries)} entries")
    return entries


def _file_info(info: zipfile.ZipInfo) -> FileInfo:
    """Build file metadata from a ZIP header."""
    mode = info.external_attr >> 16
    if stat.S_IFMT(mode) == 0:
        mode = stat.S_IFREG | (stat.S_IMODE(mode) or 0o644)

    try:
        # ZIP headers hold local wall-clock time.
        mod_time = datetime(*info.date_time).astimezone(timezone.utc)
    except ValueError:
        mod_time = EPOCH

    return FileInfo(
        name=posixpath.basename(info.filename.rstrip("/")),
        size=info.file_size,
        mode=mode,
        mod_time=mod_time,
    )
