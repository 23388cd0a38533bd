"""Restore the embedded filesystem from a container."""

import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .archive import extract_entries
from .config import DEFAULT_FORMAT, ContainerFormat
from .errors import ContainerIOError, FormatError, NotFoundError, ValidationError
from .filesystem import VirtualFileSystem, local_file_system
from .files import VirtualFile
from .signature import SIGNATURE_SIZE, Signature, SignatureCodec

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_signature(
    path: PathLike, container_format: ContainerFormat = DEFAULT_FORMAT
) -> Signature:
    """
    Decode only the trailer of a container.

    Raises:
        NotFoundError: If the file does not exist
        FormatError: If the file carries no valid trailer
        ContainerIOError: If the file cannot be read
    """
    with _open_container(path) as f:
        return _read_trailer(f, Path(path), SignatureCodec(container_format))


def restore_file_system(
    path: PathLike,
    container_format: ContainerFormat = DEFAULT_FORMAT,
    namespace: Optional[str] = None,
) -> VirtualFileSystem:
    """
    Extract the files embedded in a container.

    To inspect the running binary, pass its own path (``sys.argv[0]``).

    Args:
        path: Container path
        container_format: Expected trailer tag and version
        namespace: Top-level archive segment used at build time

    Returns:
        Filesystem rooted at the namespace, with the signature attached

    Raises:
        NotFoundError: If the file does not exist
        FormatError: If the trailer or archive region is malformed
        ContainerIOError: If the file cannot be read
    """
    path = Path(path)
    codec = SignatureCodec(container_format)

    with _open_container(path) as f:
        signature = _read_trailer(f, path, codec)
        zip_bytes = _read_archive(f, path, signature)

    entries = extract_entries(zip_bytes)
    zfs = VirtualFileSystem(
        root_path=namespace or container_format.app_tag, signature=signature
    )
    for entry in entries:
        file = VirtualFile(path=entry.path, info=entry.info, content=entry.content)
        try:
            zfs.add_file(file)
        except ValidationError as e:
            raise FormatError(f"Unexpected entry in {path}: {e}") from e

    logger.debug(f"Restored {len(zfs)} files from {path} {signature}")
    return zfs


def open_file_system(
    path: PathLike,
    *fallback_roots: PathLike,
    container_format: ContainerFormat = DEFAULT_FORMAT,
) -> VirtualFileSystem:
    """
    Restore from a container, or fall back to local files.

    The fallback is only taken when ``path`` has no container trailer and
    ``fallback_roots`` are given; it reads the same relative paths from disk.

    Raises:
        FormatError: If there is no container and no fallback roots
    """
    try:
        return restore_file_system(path, container_format=container_format)
    except FormatError as e:
        if not fallback_roots:
            raise
        logger.warning(f"No container in {path} ({e}); reading local files")
        return local_file_system(*fallback_roots)


def _open_container(path: PathLike) -> BinaryIO:
    try:
        return open(path, "rb")
    except FileNotFoundError as e:
        raise NotFoundError(f"Container not found: {path}") from e
    except OSError as e:
        raise ContainerIOError(f"Failed to open {path}: {e}") from e


def _read_trailer(f: BinaryIO, path: Path, codec: SignatureCodec) -> Signature:
    try:
        file_size = f.seek(0, os.SEEK_END)
        if file_size < SIGNATURE_SIZE:
            raise FormatError(f"{path} is too small to hold a signature")
        f.seek(file_size - SIGNATURE_SIZE)
        sig_bytes = f.read(SIGNATURE_SIZE)
    except OSError as e:
        raise ContainerIOError(f"Failed to read signature from {path}: {e}") from e
    return codec.decode(sig_bytes)


def _read_archive(f: BinaryIO, path: Path, signature: Signature) -> bytes:
    try:
        file_size = f.seek(0, os.SEEK_END)
        sig_offset = file_size - SIGNATURE_SIZE
        if signature.exe_size + signature.archive_size > sig_offset:
            raise FormatError(
                f"Archive range [{signature.exe_size}, "
                f"{signature.exe_size + signature.archive_size}) exceeds {path}"
            )
        f.seek(signature.exe_size)
        zip_bytes = f.read(signature.archive_size)
    except OSError as e:
        raise ContainerIOError(f"Failed to read archive from {path}: {e}") from e
    if len(zip_bytes) != signature.archive_size:
        raise FormatError(f"Truncated archive region in {path}")
    return zip_bytes
