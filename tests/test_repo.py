"""Tests for ignore matching and repository crawling."""

import tempfile
import warnings
from pathlib import Path

import pytest

from autodoc.errors import AccessError
from autodoc.models import NodeKind
from autodoc.repo import Entry, LocalRepoAccessor, RepoAccessor, crawl, matches

from helpers import write_repo


def test_matches_extension_anywhere():
    assert matches("README.md", ["*.md"])
    assert matches("docs/guide/intro.md", ["*.md"])
    assert not matches("src/main.py", ["*.md"])


def test_matches_directory_name_and_descendants():
    assert matches("node_modules", ["node_modules"], is_dir=True)
    assert matches("web/node_modules/react/index.js", ["node_modules"])


def test_matches_hidden_and_substring_patterns():
    assert matches(".git", [".*"], is_dir=True)
    assert matches("src/.env", [".*"])
    assert not matches("a.py", [".*"])
    assert matches("tests/test_a.py", ["*test*"])


def test_matches_no_patterns():
    assert not matches("anything.py", [])


def test_matches_compiles_without_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert matches("build/out/app.js", ["build", "*.log"], is_dir=False)
        assert not matches("src/app.js", ["build", "*.log"])


def test_crawl_sorted_and_ignored():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir), {
            "b.py": "print(2)",
            "a.py": "print(1)",
            "README.md": "# readme",
            "lib/z.py": "z = 1",
            "lib/c.py": "c = 1",
            "node_modules/pkg/index.js": "module.exports = {}",
        })
        tree = crawl(root, ["*.md", "node_modules"])

        assert tree.path == ""
        assert tree.kind is NodeKind.FOLDER
        assert [c.path for c in tree.children] == ["a.py", "b.py", "lib"]
        lib = tree.find("lib")
        assert [c.path for c in lib.children] == ["lib/c.py", "lib/z.py"]
        assert lib.children[0].parent is lib


def test_crawl_drops_empty_folders():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir), {"a.py": "x", "docs/only.md": "# doc"})
        (root / "empty").mkdir()
        tree = crawl(root, ["*.md"])
        assert [c.path for c in tree.children] == ["a.py"]


def test_walk_is_children_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir), {"a.py": "x", "lib/b.py": "y"})
        order = [n.display_path for n in crawl(root, []).walk()]
        assert order.index("lib/b.py") < order.index("lib") < order.index(".")
        assert order[-1] == "."


def test_ordered_children_files_first():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir), {"a/x.py": "x", "b.py": "y", "c/z.py": "z"})
        tree = crawl(root, [])
        assert [c.path for c in tree.children] == ["a", "b.py", "c"]
        assert [c.path for c in tree.ordered_children()] == ["b.py", "a", "c"]


class FlakyAccessor(RepoAccessor):
    """Pretends one directory cannot be listed."""

    def __init__(self, unreadable):
        self.unreadable = unreadable

    @property
    def root(self):
        return "memory://repo"

    def list_dir(self, rel_path):
        if rel_path == self.unreadable:
            raise PermissionError(f"denied: {rel_path}")
        return {
            "": [Entry("secret", True), Entry("ok", True), Entry("main.py", False)],
            "ok": [Entry("util.py", False)],
        }.get(rel_path, [])

    def read_bytes(self, rel_path):
        return b""


def test_crawl_skips_unreadable_directory(caplog):
    tree = crawl("unused", [], accessor=FlakyAccessor("secret"))
    assert [c.path for c in tree.children] == ["main.py", "ok"]
    assert "secret" in caplog.text


def test_crawl_unreadable_root():
    with pytest.raises(AccessError):
        crawl("unused", [], accessor=FlakyAccessor(""))


def test_local_accessor_missing_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(AccessError):
            crawl(Path(tmpdir) / "missing", [])


def test_local_accessor_reads_bytes():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir), {"lib/b.py": "print(2)"})
        accessor = LocalRepoAccessor(root)
        assert accessor.read_bytes("lib/b.py") == b"print(2)"
        assert accessor.list_dir("lib") == [Entry("b.py", False)]
