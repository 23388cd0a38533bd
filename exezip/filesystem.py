"""Read-only, path-keyed in-memory filesystem over embedded files."""

import logging
import posixpath
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from .errors import ContainerIOError, NotFoundError, ValidationError
from .files import (
    FileInfo,
    OpenedFile,
    RegularFile,
    SyntheticDirectory,
    VirtualFile,
    normalize_path,
)
from .signature import Signature

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class VirtualFileSystem:
    """
    Files keyed by their full ``/``-separated path.

    Every key starts with ``root_path + "/"``; an empty root path accepts any
    key (the local-directory fallback). The entry map is filled while the
    filesystem is built and only read afterwards, so a published filesystem
    can serve concurrent ``open`` calls without locking.
    """

    def __init__(
        self,
        root_path: str = "",
        signature: Optional[Signature] = None,
        entries: Optional[Dict[str, VirtualFile]] = None,
    ) -> None:
        """
        Initialize file system.

        Args:
            root_path: Scoping prefix of every key
            signature: Trailer of the container the files came from
            entries: Initial entries keyed by full path
        """
        self.root_path = normalize_path(root_path)
        self.signature = signature
        self._entries: Dict[str, VirtualFile] = dict(entries or {})

    @property
    def _prefix(self) -> str:
        return f"{self.root_path}/" if self.root_path else ""

    def add_file(self, file: VirtualFile) -> None:
        """Insert a file under its full path. Only used while building."""
        key = normalize_path(file.path)
        if not key.startswith(self._prefix):
            raise ValidationError(f"{key} is outside of root {self.root_path!r}")
        self._entries[key] = file

    def get_file(self, path: str) -> VirtualFile:
        """
        Look up a file relative to the root path.

        Raises:
            NotFoundError: If there is no entry with exactly that path
        """
        key = normalize_path(posixpath.join(self.root_path, normalize_path(path)))
        file = self._entries.get(key)
        if file is None:
            raise NotFoundError(f"File does not exist: {path}")
        return file

    def read_file(self, path: str) -> bytes:
        return self.get_file(path).content

    def read_file_string(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_file(path).decode(encoding)

    def paths(self) -> List[str]:
        """Relative paths of all files, sorted."""
        prefix = self._prefix
        return sorted(
            key[len(prefix) :] for key in self._entries if key.startswith(prefix)
        )

    def sub_file_system(self, relative_root: str) -> "VirtualFileSystem":
        """
        Get a view limited to the files below ``relative_root``.

        The view shares the signature and file contents with this filesystem
        but holds its own entry map.

        Raises:
            ValidationError: If ``relative_root`` contains ``..``
        """
        if ".." in relative_root:
            raise ValidationError(
                f"No double dots [..] are allowed in root path: {relative_root}"
            )

        new_root = normalize_path(
            posixpath.join(self.root_path, normalize_path(relative_root))
        )
        prefix = f"{new_root}/" if new_root else ""
        entries = {
            key: file for key, file in self._entries.items() if key.startswith(prefix)
        }
        return VirtualFileSystem(
            root_path=new_root, signature=self.signature, entries=entries
        )

    def open(self, name: str) -> OpenedFile:
        """
        Open a file for serving.

        A missing path yields a :class:`SyntheticDirectory` rather than an
        error, so a file server can treat implicit directories gracefully.
        """
        path = name.lstrip("/")
        try:
            file = self.get_file(path)
        except NotFoundError:
            base = posixpath.basename(normalize_path(path)) or "."
            return SyntheticDirectory(base)
        return RegularFile(file)

    def file_server(self, base_path: str) -> Optional["FastAPI"]:
        """
        Get a static file server for the files below ``base_path``.

        Returns:
            ASGI application, or None if ``base_path`` is invalid
        """
        from .server import create_file_server

        try:
            sub_fs = self.sub_file_system(base_path)
        except ValidationError as e:
            logger.error(f"Cannot serve {base_path!r}: {e}")
            return None
        return create_file_server(sub_fs)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        try:
            self.get_file(path)
        except NotFoundError:
            return False
        return True

    def __str__(self) -> str:
        if self.signature is not None:
            return str(self.signature)
        return f"VirtualFileSystem(root={self.root_path!r},files={len(self._entries)})"


def local_file_system(*root_paths: Union[str, Path]) -> VirtualFileSystem:
    """
    Load local files into a filesystem with the same path contract.

    Files are keyed by their path as given, so a file reached through
    ``testdata`` is read back as ``testdata/foo``.

    Args:
        root_paths: Files or directories to load

    Raises:
        NotFoundError: If a root path does not exist
        ContainerIOError: If a file cannot be read
    """
    fs = VirtualFileSystem(root_path="")
    for root in root_paths:
        root = Path(root)
        if not root.exists():
            raise NotFoundError(f"Local path not found: {root}")
        for file_path in _walk_files(root):
            try:
                content = file_path.read_bytes()
                st = file_path.stat()
            except OSError as e:
                raise ContainerIOError(f"Failed to read {file_path}: {e}") from e
            info = FileInfo(
                name=file_path.name,
                size=len(content),
                mode=st.st_mode,
                mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            )
            fs.add_file(
                VirtualFile(path=file_path.as_posix(), info=info, content=content)
            )

    logger.debug(f"Loaded {len(fs)} local files")
    return fs


def _walk_files(root: Path) -> Iterable[Path]:
    if not root.is_dir():
        return [root]
    return sorted(
        (p for p in root.rglob("*") if p.is_file()), key=lambda p: p.as_posix()
    )
