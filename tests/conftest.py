"""Shared fixtures: a dummy executable and a small asset tree."""

from pathlib import Path

import pytest

from exezip import build_container, restore_file_system

EXE_CONTENT = b"\x7fELF" + b"dummy executable\n" * 64


@pytest.fixture
def testdata(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Create ``testdata/`` in a temporary working directory.

    Layout::

        testdata/executable
        testdata/foo          "foo"
        testdata/dir/bar      "bar"
        testdata/dir/baz      "baz"
        testdata/empty/       (no files)
    """
    monkeypatch.chdir(tmp_path)
    root = Path("testdata")
    (root / "dir").mkdir(parents=True)
    (root / "empty").mkdir()

    exe = root / "executable"
    exe.write_bytes(EXE_CONTENT)
    exe.chmod(0o755)

    (root / "foo").write_text("foo")
    (root / "dir" / "bar").write_text("bar")
    (root / "dir" / "baz").write_text("baz")
    return root


@pytest.fixture
def container(testdata: Path) -> Path:
    """A container embedding ``testdata/foo`` and ``testdata/dir``."""
    out = Path("container.out")
    build_container(
        testdata / "executable",
        [testdata / "foo", testdata / "dir", testdata / "empty"],
        out,
    )
    return out


@pytest.fixture
def zfs(container: Path):
    return restore_file_system(container)
