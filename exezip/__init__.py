"""
exezip - Single binaries with embedded asset files.

Appends a ZIP archive of asset files plus a fixed-size trailer to a copy of
an executable, and restores those files at runtime into a read-only
in-memory filesystem that can be served over HTTP.
"""

__version__ = "0.1.0"

from .archive import ArchiveEntry, Zipper, extract_entries
from .builder import ContainerBuilder, build_container
from .config import DEFAULT_FORMAT, BuildSettings, ContainerFormat
from .errors import (
    ContainerIOError,
    ExezipError,
    FormatError,
    NotFoundError,
    UnsupportedError,
    ValidationError,
)
from .files import FileInfo, RegularFile, SyntheticDirectory, VirtualFile
from .filesystem import VirtualFileSystem, local_file_system
from .restorer import open_file_system, read_signature, restore_file_system
from .signature import SIGNATURE_SIZE, Signature, SignatureCodec

__all__ = [
    "ArchiveEntry",
    "Zipper",
    "extract_entries",
    "ContainerBuilder",
    "build_container",
    "DEFAULT_FORMAT",
    "BuildSettings",
    "ContainerFormat",
    "ContainerIOError",
    "ExezipError",
    "FormatError",
    "NotFoundError",
    "UnsupportedError",
    "ValidationError",
    "FileInfo",
    "RegularFile",
    "SyntheticDirectory",
    "VirtualFile",
    "VirtualFileSystem",
    "local_file_system",
    "open_file_system",
    "read_signature",
    "restore_file_system",
    "SIGNATURE_SIZE",
    "Signature",
    "SignatureCodec",
]
