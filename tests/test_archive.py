"""Tests for the ZIP adapter."""

import io
import os
import stat
import time
import zipfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from exezip import FormatError, NotFoundError, ValidationError, Zipper, extract_entries


def test_add_directory_recursively(testdata: Path) -> None:
    with Zipper() as zipper:
        assert zipper.add(testdata / "dir") == 2
        assert zipper.add(testdata / "foo") == 1

    assert zipper.names == [
        "exezip/testdata/dir/bar",
        "exezip/testdata/dir/baz",
        "exezip/testdata/foo",
    ]


def test_empty_directory_adds_nothing(testdata: Path) -> None:
    with Zipper() as zipper:
        assert zipper.add(testdata / "empty") == 0

    names = zipfile.ZipFile(io.BytesIO(zipper.to_bytes())).namelist()
    assert names == []


def test_directories_are_not_stored(testdata: Path) -> None:
    with Zipper() as zipper:
        zipper.add(testdata)

    with zipfile.ZipFile(io.BytesIO(zipper.to_bytes())) as archive:
        assert all(not info.is_dir() for info in archive.infolist())


def test_custom_namespace(testdata: Path) -> None:
    with Zipper(namespace="assets") as zipper:
        zipper.add(testdata / "foo")

    assert zipper.names == ["assets/testdata/foo"]


def test_entry_name_normalization(testdata: Path) -> None:
    zipper = Zipper()
    assert zipper.entry_name(Path("./testdata/foo")) == "exezip/testdata/foo"
    assert zipper.entry_name(Path("/abs/path/file")) == "exezip/abs/path/file"

    with pytest.raises(ValidationError):
        zipper.entry_name(Path("../outside"))


def test_duplicate_paths_added_once(testdata: Path) -> None:
    with Zipper() as zipper:
        zipper.add(testdata / "foo")
        assert zipper.add(testdata / "foo") == 0

    assert zipper.names == ["exezip/testdata/foo"]


def test_missing_path(testdata: Path) -> None:
    with pytest.raises(NotFoundError):
        Zipper().add(testdata / "missing")


def test_bytes_before_close() -> None:
    with pytest.raises(ValidationError):
        Zipper().to_bytes()


def test_add_after_close(testdata: Path) -> None:
    zipper = Zipper()
    zipper.close()

    with pytest.raises(ValidationError):
        zipper.add(testdata / "foo")


def test_builds_are_deterministic(testdata: Path) -> None:
    blobs = []
    for _ in range(2):
        with Zipper() as zipper:
            zipper.add(testdata)
        blobs.append(zipper.to_bytes())

    assert blobs[0] == blobs[1]


def test_extract_entries(testdata: Path) -> None:
    with Zipper() as zipper:
        zipper.add(testdata / "dir")

    entries = extract_entries(zipper.to_bytes())

    assert [e.path for e in entries] == [
        "exezip/testdata/dir/bar",
        "exezip/testdata/dir/baz",
    ]
    bar = entries[0]
    assert bar.content == b"bar"
    assert bar.info.name == "bar"
    assert bar.info.size == 3
    assert stat.S_ISREG(bar.info.mode)
    assert not bar.info.is_dir
    assert bar.info.mod_time.tzinfo is not None


def test_extract_skips_directory_entries() -> None:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("exezip/dir/", b"")
        archive.writestr("exezip/dir/file.txt", b"hello")

    entries = extract_entries(buffer.getvalue())

    assert [e.path for e in entries] == ["exezip/dir/file.txt"]
    assert stat.S_ISREG(entries[0].info.mode)


def test_extract_corrupt_blob() -> None:
    with pytest.raises(FormatError):
        extract_entries(b"this is not a zip archive")


@pytest.fixture
def local_timezone():
    """Run with a local time five hours behind UTC."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available")
    saved = os.environ.get("TZ")
    os.environ["TZ"] = "XXX+05"
    time.tzset()
    yield
    if saved is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = saved
    time.tzset()


def test_extract_mod_time_is_utc(testdata: Path, local_timezone) -> None:
    source = testdata / "foo"
    with Zipper() as zipper:
        zipper.add(source)

    (entry,) = extract_entries(zipper.to_bytes())
    expected = datetime.fromtimestamp(source.stat().st_mtime, tz=timezone.utc)

    # ZIP timestamps have a two second resolution.
    assert abs((expected - entry.info.mod_time).total_seconds()) < 2
