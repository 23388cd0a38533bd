"""Embedded file entities and the results handed out by ``open``.

An opened path is either a :class:`RegularFile` (metadata, shared content and
a private :class:`Cursor`) or a :class:`SyntheticDirectory` standing in for a
path that has no entry. Neither supports directory listing.
"""

import os
import posixpath
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Union

from .errors import UnsupportedError, ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class FileInfo:
    """Metadata of an embedded file."""

    name: str
    size: int
    mode: int
    mod_time: datetime = EPOCH

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def permissions(self) -> int:
        return stat.S_IMODE(self.mode)


@dataclass(frozen=True)
class VirtualFile:
    """A file extracted into memory. Content never changes after creation."""

    path: str
    info: FileInfo
    content: bytes


class Cursor:
    """Read position over an immutable buffer. One per ``open``."""

    def __init__(self, content: bytes) -> None:
        self._content = content
        self._position = 0

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or everything left when negative."""
        start = min(self._position, len(self._content))
        if size is None or size < 0:
            end = len(self._content)
        else:
            end = min(start + size, len(self._content))
        self._position = max(self._position, end)
        return self._content[start:end]

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """
        Move the read position.

        Args:
            offset: Byte offset relative to ``whence``
            whence: ``os.SEEK_SET``, ``os.SEEK_CUR`` or ``os.SEEK_END``

        Returns:
            New absolute position

        Raises:
            ValidationError: On an unknown whence or a negative position
        """
        if whence == os.SEEK_SET:
            position = offset
        elif whence == os.SEEK_CUR:
            position = self._position + offset
        elif whence == os.SEEK_END:
            position = len(self._content) + offset
        else:
            raise ValidationError(f"Invalid whence: {whence}")
        if position < 0:
            raise ValidationError(f"Negative seek position: {position}")
        self._position = position
        return position

    def tell(self) -> int:
        return self._position


class RegularFile:
    """An opened embedded file."""

    def __init__(self, file: VirtualFile) -> None:
        self._file = file
        self._cursor = Cursor(file.content)

    @property
    def path(self) -> str:
        return self._file.path

    def read(self, size: int = -1) -> bytes:
        return self._cursor.read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._cursor.seek(offset, whence)

    def tell(self) -> int:
        return self._cursor.tell()

    def stat(self) -> FileInfo:
        return self._file.info

    def readdir(self, count: int = -1) -> List[FileInfo]:
        raise UnsupportedError(f"Cannot list {self._file.path}: not a directory")

    def close(self) -> None:
        # Content is owned by the filesystem.
        pass

    def __enter__(self) -> "RegularFile":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SyntheticDirectory:
    """Directory-shaped stand-in for a path without an entry."""

    def __init__(self, name: str) -> None:
        self._info = FileInfo(name=name, size=0, mode=stat.S_IFDIR | 0o777)

    @property
    def name(self) -> str:
        return self._info.name

    def read(self, size: int = -1) -> bytes:
        return b""

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return 0

    def tell(self) -> int:
        return 0

    def stat(self) -> FileInfo:
        return self._info

    def readdir(self, count: int = -1) -> List[FileInfo]:
        raise UnsupportedError("Directory listing is not supported")

    def close(self) -> None:
        pass

    def __enter__(self) -> "SyntheticDirectory":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


OpenedFile = Union[RegularFile, SyntheticDirectory]


def normalize_path(path: str) -> str:
    """Use forward slashes and drop leading slashes and ``.`` segments."""
    path = path.replace("\\", "/").lstrip("/")
    if not path:
        return ""
    path = posixpath.normpath(path)
    return "" if path == "." else path
