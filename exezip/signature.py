"""Fixed-size container trailer and its binary codec.

The trailer is the last 64 bytes of every container::

    offset  size  field
    0       8     app tag (NUL padded ASCII)
    8       2     major version
    10      2     minor version
    12      2     revision
    14      8     executable size (int64)
    22      8     archive size (int64)
    30      34    reserved, zero

All integers are big-endian.
"""

import logging
import struct

from pydantic import BaseModel, ConfigDict, Field

from .config import APP_TAG_SIZE, DEFAULT_FORMAT, UINT16_MAX, ContainerFormat
from .errors import FormatError

SIGNATURE_SIZE = 64

_LAYOUT = struct.Struct(f">{APP_TAG_SIZE}sHHHqq")
_TRAILER = struct.Struct(f"{_LAYOUT.format}{SIGNATURE_SIZE - _LAYOUT.size}x")

logger = logging.getLogger(__name__)


class Signature(BaseModel):
    """Decoded container trailer."""

    model_config = ConfigDict(frozen=True)

    app_tag: str
    major: int = Field(ge=0, le=UINT16_MAX)
    minor: int = Field(ge=0, le=UINT16_MAX)
    revision: int = Field(ge=0, le=UINT16_MAX)
    exe_size: int = Field(gt=0)
    archive_size: int = Field(gt=0)

    @property
    def version(self) -> str:
        return f"{self.app_tag}-{self.major}.{self.minor}.{self.revision}"

    @property
    def total_size(self) -> int:
        """Size of the whole container: executable, archive and trailer."""
        return self.exe_size + self.archive_size + SIGNATURE_SIZE

    def __str__(self) -> str:
        return (
            f"{self.version}(exe:{self.exe_size},"
            f"archive:{self.archive_size},total:{self.total_size})"
        )


class SignatureCodec:
    """Encodes and decodes trailers for one container format."""

    def __init__(self, container_format: ContainerFormat = DEFAULT_FORMAT) -> None:
        """
        Initialize the codec.

        Args:
            container_format: Expected tag and version of the trailers
        """
        self.container_format = container_format

    def new_signature(self, exe_size: int, archive_size: int) -> Signature:
        """
        Create a signature stamped with this codec's format.

        Args:
            exe_size: Byte size of the executable section
            archive_size: Byte size of the archive section

        Returns:
            New signature

        Raises:
            FormatError: If either size is not positive
        """
        if exe_size <= 0 or archive_size <= 0:
            raise FormatError(
                f"Sizes must be positive (exe:{exe_size},archive:{archive_size})"
            )
        fmt = self.container_format
        return Signature(
            app_tag=fmt.app_tag,
            major=fmt.major,
            minor=fmt.minor,
            revision=fmt.revision,
            exe_size=exe_size,
            archive_size=archive_size,
        )

    def encode(self, signature: Signature) -> bytes:
        """
        Serialize a signature into its 64-byte trailer.

        Args:
            signature: Signature to serialize

        Returns:
            Trailer bytes

        Raises:
            FormatError: If a field does not fit the trailer layout
        """
        try:
            return _TRAILER.pack(
                signature.app_tag.encode("ascii"),
                signature.major,
                signature.minor,
                signature.revision,
                signature.exe_size,
                signature.archive_size,
            )
        except (struct.error, UnicodeEncodeError) as e:
            raise FormatError(f"Cannot encode signature {signature}: {e}") from e

    def decode(self, data: bytes) -> Signature:
        """
        Parse a 64-byte trailer.

        Args:
            data: Trailer bytes

        Returns:
            Decoded signature

        Raises:
            FormatError: On wrong size, unexpected tag or non-positive sizes
        """
        if len(data) != SIGNATURE_SIZE:
            raise FormatError(
                f"Invalid signature size: expected {SIGNATURE_SIZE}, got {len(data)}"
            )

        raw_tag, major, minor, revision, exe_size, archive_size = _TRAILER.unpack(data)
        app_tag = _decode_app_tag(raw_tag)
        if app_tag != self.container_format.app_tag:
            raise FormatError(
                f"Invalid signature tag: expected "
                f"{self.container_format.app_tag!r}, got {app_tag!r}"
            )
        if exe_size <= 0:
            raise FormatError(f"Invalid executable size in signature: {exe_size}")
        if archive_size <= 0:
            raise FormatError(f"Invalid archive size in signature: {archive_size}")

        signature = Signature(
            app_tag=app_tag,
            major=major,
            minor=minor,
            revision=revision,
            exe_size=exe_size,
            archive_size=archive_size,
        )
        if signature.version != self.container_format.version:
            logger.debug(
                f"Signature version {signature.version} differs from "
                f"{self.container_format.version}"
            )
        return signature


def _decode_app_tag(raw_tag: bytes) -> str:
    """Read the tag up to the first NUL byte, or the full width."""
    end = raw_tag.find(b"\x00")
    if end >= 0:
        raw_tag = raw_tag[:end]
    try:
        return raw_tag.decode("ascii")
    except UnicodeDecodeError as e:
        raise FormatError(f"Signature tag is not ASCII: {raw_tag!r}") from e
