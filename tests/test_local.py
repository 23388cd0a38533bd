"""Local directory fallback."""

from pathlib import Path

import pytest

from exezip import FormatError, NotFoundError, local_file_system, open_file_system


def test_local_file_system(testdata: Path) -> None:
    zfs = local_file_system("./testdata")

    assert zfs.read_file_string("testdata/foo") == "foo"
    assert zfs.read_file_string("testdata/dir/baz") == "baz"
    assert zfs.signature is None
    assert "testdata/empty" not in zfs.paths()


def test_local_file_system_single_file(testdata: Path) -> None:
    zfs = local_file_system(testdata / "foo")

    assert zfs.paths() == ["testdata/foo"]
    assert zfs.get_file("testdata/foo").info.size == 3


def test_local_file_system_missing_root(testdata: Path) -> None:
    with pytest.raises(NotFoundError):
        local_file_system("nothing")


def test_local_sub_file_system(testdata: Path) -> None:
    sub = local_file_system(testdata).sub_file_system("testdata/dir")

    assert sub.paths() == ["bar", "baz"]


def test_open_file_system_prefers_container(container: Path, testdata: Path) -> None:
    zfs = open_file_system(container, testdata)

    assert zfs.signature is not None
    assert zfs.read_file_string("testdata/foo") == "foo"


def test_open_file_system_falls_back(testdata: Path) -> None:
    zfs = open_file_system(testdata / "executable", testdata)

    assert zfs.signature is None
    assert zfs.read_file_string("testdata/dir/bar") == "bar"


def test_open_file_system_without_fallback(testdata: Path) -> None:
    with pytest.raises(FormatError):
        open_file_system(testdata / "executable")
