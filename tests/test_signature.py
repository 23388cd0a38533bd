"""Tests for the trailer codec."""

import struct

import pytest

from exezip import DEFAULT_FORMAT, SIGNATURE_SIZE, ContainerFormat, FormatError
from exezip.signature import Signature, SignatureCodec


@pytest.fixture
def codec() -> SignatureCodec:
    return SignatureCodec(DEFAULT_FORMAT)


def _raw_trailer(tag: bytes, exe_size: int, archive_size: int) -> bytes:
    return struct.pack(">8sHHHqq34x", tag, 0, 1, 0, exe_size, archive_size)


def test_encode_decode(codec: SignatureCodec) -> None:
    sig = codec.new_signature(12345678901234, 98765432123456)
    data = codec.encode(sig)
    assert len(data) == SIGNATURE_SIZE

    restored = codec.decode(data)
    assert restored == sig
    assert restored.app_tag == "exezip"
    assert (restored.major, restored.minor, restored.revision) == (0, 1, 0)
    assert restored.exe_size == 12345678901234
    assert restored.archive_size == 98765432123456
    assert str(restored) == str(sig)


def test_layout_is_big_endian_and_zero_padded(codec: SignatureCodec) -> None:
    data = codec.encode(codec.new_signature(0x0102, 0x0304))

    assert data[0:8] == b"exezip\x00\x00"
    assert data[8:10] == b"\x00\x00"
    assert data[10:12] == b"\x00\x01"
    assert data[12:14] == b"\x00\x00"
    assert data[14:22] == (0x0102).to_bytes(8, "big")
    assert data[22:30] == (0x0304).to_bytes(8, "big")
    assert data[30:] == bytes(34)


def test_string_rendering(codec: SignatureCodec) -> None:
    sig = codec.new_signature(10, 20)
    assert sig.total_size == 10 + 20 + 64
    assert str(sig) == "exezip-0.1.0(exe:10,archive:20,total:94)"


def test_full_width_tag() -> None:
    fmt = ContainerFormat(app_tag="abcdefgh", major=1, minor=2, revision=3)
    codec = SignatureCodec(fmt)
    data = codec.encode(codec.new_signature(1, 1))

    assert data[0:8] == b"abcdefgh"
    assert codec.decode(data).app_tag == "abcdefgh"


@pytest.mark.parametrize("size", [0, 63, 65, 128])
def test_decode_wrong_size(codec: SignatureCodec, size: int) -> None:
    with pytest.raises(FormatError):
        codec.decode(bytes(size))


def test_decode_wrong_tag(codec: SignatureCodec) -> None:
    with pytest.raises(FormatError, match="tag"):
        codec.decode(_raw_trailer(b"other", 10, 10))


def test_decode_other_format_rejected() -> None:
    other = SignatureCodec(ContainerFormat(app_tag="other"))
    data = other.encode(other.new_signature(5, 5))

    with pytest.raises(FormatError):
        SignatureCodec(DEFAULT_FORMAT).decode(data)


@pytest.mark.parametrize(
    "exe_size, archive_size",
    [(0, 10), (10, 0), (-1, 10), (10, -5)],
)
def test_decode_non_positive_sizes(
    codec: SignatureCodec, exe_size: int, archive_size: int
) -> None:
    with pytest.raises(FormatError):
        codec.decode(_raw_trailer(b"exezip", exe_size, archive_size))


def test_decode_non_ascii_tag(codec: SignatureCodec) -> None:
    with pytest.raises(FormatError):
        codec.decode(_raw_trailer(b"\xffexezip", 10, 10))


def test_decode_ignores_reserved_bytes(codec: SignatureCodec) -> None:
    data = bytearray(codec.encode(codec.new_signature(7, 9)))
    data[40] = 0xAA

    assert codec.decode(bytes(data)).exe_size == 7


def test_new_signature_rejects_non_positive_sizes(codec: SignatureCodec) -> None:
    with pytest.raises(FormatError):
        codec.new_signature(0, 10)


def test_encode_rejects_unencodable_tag(codec: SignatureCodec) -> None:
    sig = Signature(
        app_tag="exézip", major=0, minor=1, revision=0, exe_size=1, archive_size=1
    )
    with pytest.raises(FormatError):
        codec.encode(sig)
