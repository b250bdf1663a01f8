"""Tests for markdown materialization."""

import tempfile
from pathlib import Path

from autodoc.config import output_dirs
from autodoc.docs.materializer import DocumentMaterializer, document_path
from autodoc.docs.templates import split_frontmatter
from autodoc.models import NodeKind, NodeStatus, ProcessingRecord
from autodoc.stages import convert_json_to_markdown, process_repository
from autodoc.storage.records import RecordStore

from helpers import FakeLLM, make_config, write_repo


def _record(path, kind, status=NodeStatus.DONE, **kwargs):
    return ProcessingRecord(path=path, kind=kind, summary=f"About {path or 'root'}", status=status, **kwargs)


def test_document_path():
    assert document_path("") == "index.md"
    assert document_path("a.py") == "a.py.md"
    assert document_path("lib") == "lib.md"
    assert document_path("lib/b.py") == "lib/b.py.md"


def test_materialize_full_tree():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = write_repo(Path(tmpdir) / "repo", {"a.py": "print(1)", "lib/b.py": "print(2)"})
        cfg = make_config(root, Path(tmpdir) / "out")
        process_repository(cfg, llm=FakeLLM())

        result = convert_json_to_markdown(cfg)
        md = output_dirs(cfg)["markdown"]

        assert sorted(p.relative_to(md).as_posix() for p in result.written) == [
            "a.py.md", "index.md", "lib.md", "lib/b.py.md",
        ]
        assert result.omitted == []

        index = (md / "index.md").read_text()
        frontmatter, body = split_frontmatter(index)
        assert frontmatter["title"] == "demo"
        assert frontmatter["kind"] == "folder"
        assert body.startswith("# demo")
        assert "Summary of ." in body
        assert "- [a.py](a.py.md)" in body
        assert "- [lib](lib.md)" in body
        assert body.index("[a.py]") < body.index("[lib]")

        leaf = (md / "lib" / "b.py.md").read_text()
        assert "Up: [lib](../lib.md)" in leaf
        assert "Summary of lib/b.py" in leaf
        assert "Up: [demo](index.md)" in (md / "lib.md").read_text()


def test_materialize_omits_incomplete_records(caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        store = RecordStore(Path(tmpdir) / "json")
        store.save(_record("a.py", NodeKind.FILE))
        store.save(_record("lib/b.py", NodeKind.FILE, status=NodeStatus.FAILED, error="boom"))
        store.save(_record("lib", NodeKind.FOLDER, status=NodeStatus.BLOCKED, files=["lib/b.py"]))
        store.save(_record("", NodeKind.FOLDER, status=NodeStatus.BLOCKED, files=["a.py"], folders=["lib"]))
        cfg = make_config(tmpdir, tmpdir)

        md = Path(tmpdir) / "markdown"
        result = DocumentMaterializer(store, md, cfg).materialize()

        assert [p.name for p in result.written] == ["a.py.md"]
        assert sorted(result.omitted) == [".", "lib", "lib/b.py"]
        assert "Up:" not in (md / "a.py.md").read_text()
        assert "lib/b.py" in caplog.text


def test_materialize_omits_missing_children():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = RecordStore(Path(tmpdir) / "json")
        store.save(_record("a.py", NodeKind.FILE))
        store.save(_record("", NodeKind.FOLDER, files=["a.py", "gone.py"]))
        md = Path(tmpdir) / "markdown"
        result = DocumentMaterializer(store, md, make_config(tmpdir, tmpdir)).materialize()

        assert result.omitted == ["gone.py"]
        index = (md / "index.md").read_text()
        assert "[a.py](a.py.md)" in index
        assert "gone.py" not in index


def test_materialize_replaces_stale_pages():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = RecordStore(Path(tmpdir) / "json")
        store.save(_record("a.py", NodeKind.FILE))
        md = Path(tmpdir) / "markdown"
        (md / "old").mkdir(parents=True)
        (md / "old" / "stale.py.md").write_text("stale")

        DocumentMaterializer(store, md, make_config(tmpdir, tmpdir)).materialize()
        assert not (md / "old").exists()
        assert (md / "a.py.md").exists()


def test_hosted_links_and_source_url():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = RecordStore(Path(tmpdir) / "json")
        store.save(_record("lib/b.py", NodeKind.FILE, url="https://github.com/acme/demo/blob/main/lib/b.py"))
        store.save(_record("lib", NodeKind.FOLDER, files=["lib/b.py"]))
        cfg = make_config(tmpdir, tmpdir, link_hosted=True, hosted_docs_url="https://docs.example.com/demo/")

        md = Path(tmpdir) / "markdown"
        DocumentMaterializer(store, md, cfg).materialize()

        leaf = (md / "lib" / "b.py.md").read_text()
        assert "[View source](https://github.com/acme/demo/blob/main/lib/b.py)" in leaf
        assert "Up: [lib](https://docs.example.com/demo/lib.md)" in leaf
        assert "[b.py](https://docs.example.com/demo/lib/b.py.md)" in (md / "lib.md").read_text()


def test_page_collision_keeps_first(caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        store = RecordStore(Path(tmpdir) / "json")
        store.save(_record("index", NodeKind.FILE))
        store.save(_record("", NodeKind.FOLDER, files=["index"]))
        md = Path(tmpdir) / "markdown"
        result = DocumentMaterializer(store, md, make_config(tmpdir, tmpdir)).materialize()

        assert len(result.written) == 1
        assert result.omitted == ["index"]
        assert "already written" in caplog.text
