"""Container builder: executable bytes, archive blob and trailer in one file."""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import List, Optional, Union

from .archive import Zipper
from .config import DEFAULT_FORMAT, BuildSettings, ContainerFormat
from .errors import ContainerIOError, NotFoundError, ValidationError
from .signature import Signature, SignatureCodec

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ContainerBuilder:
    """Builds a container in strictly ordered stages."""

    def __init__(
        self,
        container_format: ContainerFormat = DEFAULT_FORMAT,
        namespace: Optional[str] = None,
    ) -> None:
        """
        Initialize container builder.

        Args:
            container_format: Tag and version written into the trailer
            namespace: Top-level archive segment (defaults to the format tag)
        """
        self.codec = SignatureCodec(container_format)
        self.namespace = namespace or container_format.app_tag

        self.exe_path: Optional[Path] = None
        self.zip_paths: List[Path] = []
        self.out_path: Path = Path("out")

    @classmethod
    def from_settings(
        cls,
        settings: BuildSettings,
        container_format: ContainerFormat = DEFAULT_FORMAT,
    ) -> "ContainerBuilder":
        """Create a builder with every path of ``settings`` already checked."""
        builder = cls(container_format=container_format, namespace=settings.namespace)
        builder.set_exe_path(settings.exe_path)
        for zip_path in settings.zip_paths:
            builder.add_zip_path(zip_path)
        builder.set_out_path(settings.out_path)
        return builder

    def set_exe_path(self, exe_path: PathLike) -> None:
        """
        Set the executable to embed into.

        Raises:
            NotFoundError: If the file does not exist
        """
        exe_path = Path(exe_path)
        if not exe_path.is_file():
            raise NotFoundError(f"Executable not found: {exe_path}")
        self.exe_path = exe_path

    def add_zip_path(self, zip_path: PathLike) -> None:
        """
        Add a file or directory to embed.

        Raises:
            NotFoundError: If the path does not exist
        """
        zip_path = Path(zip_path)
        if not zip_path.exists():
            raise NotFoundError(f"Path to embed not found: {zip_path}")
        self.zip_paths.append(zip_path)

    def set_out_path(self, out_path: PathLike) -> None:
        self.out_path = Path(out_path)

    def build(self) -> Signature:
        """
        Write the container to the output path.

        Returns:
            Signature written into the trailer

        Raises:
            ExezipError: If any stage fails; no partial output is left behind
        """
        start = time.time()
        logger.info(f"Building {self.out_path}")

        exe_bytes = self._read_exe_bytes()
        zip_bytes = self._build_zip_bytes()
        signature = self.codec.new_signature(len(exe_bytes), len(zip_bytes))
        sig_bytes = self.codec.encode(signature)
        self._write_out_file(exe_bytes, zip_bytes, sig_bytes)

        logger.info(
            f"Exported {self.out_path} {signature} in {time.time() - start:.2f}s"
        )
        return signature

    def _read_exe_bytes(self) -> bytes:
        if self.exe_path is None:
            raise ValidationError("Executable path not set")
        try:
            exe_bytes = self.exe_path.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"Executable not found: {self.exe_path}") from e
        except OSError as e:
            raise ContainerIOError(f"Failed to read {self.exe_path}: {e}") from e
        if not exe_bytes:
            raise ValidationError(f"Executable is empty: {self.exe_path}")
        logger.debug(f"Read {len(exe_bytes)} executable bytes from {self.exe_path}")
        return exe_bytes

    def _build_zip_bytes(self) -> bytes:
        if not self.zip_paths:
            raise ValidationError("Zip paths not set")

        with Zipper(namespace=self.namespace) as zipper:
            for zip_path in self.zip_paths:
                added = zipper.add(zip_path)
                logger.debug(f"Added {added} files from {zip_path}")

        zip_bytes = zipper.to_bytes()
        logger.debug(
            f"Archive holds {len(zipper.names)} files in {len(zip_bytes)} bytes"
        )
        return zip_bytes

    def _write_out_file(
        self, exe_bytes: bytes, zip_bytes: bytes, sig_bytes: bytes
    ) -> None:
        if self.out_path.is_dir():
            raise ContainerIOError(f"Output path is a directory: {self.out_path}")
        try:
            with self.out_path.open("wb") as f:
                f.write(exe_bytes)
                f.write(zip_bytes)
                f.write(sig_bytes)
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(self.exe_path, self.out_path)
        except OSError as e:
            self._remove_partial_output()
            raise ContainerIOError(f"Failed to write {self.out_path}: {e}") from e

    def _remove_partial_output(self) -> None:
        if not self.out_path.is_file():
            return
        try:
            self.out_path.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove partial output {self.out_path}: {e}")


def build_container(
    exe_path: PathLike,
    zip_paths: List[PathLike],
    out_path: PathLike = "out",
    namespace: Optional[str] = None,
    container_format: ContainerFormat = DEFAULT_FORMAT,
) -> Signature:
    """
    Build a container in one call.

    Args:
        exe_path: Executable to embed into
        zip_paths: Files or directories to embed
        out_path: Output container path
        namespace: Top-level archive segment
        container_format: Tag and version for the trailer

    Returns:
        Signature written into the trailer
    """
    builder = ContainerBuilder(container_format=container_format, namespace=namespace)
    builder.set_exe_path(exe_path)
    for zip_path in zip_paths:
        builder.add_zip_path(zip_path)
    builder.set_out_path(out_path)
    return builder.build()
