"""Tests for the index command's report."""

import yaml
from click.testing import CliRunner

import autodoc.stages
from autodoc.cli import cli

from helpers import FakeEmbedder, FakeLLM, FakeVectorStore, make_config, write_repo


def _run_index(tmp_path, monkeypatch, llm):
    root = write_repo(tmp_path / "repo", {"a.py": "print(1)", "lib/b.py": "print(2)"})
    config_file = tmp_path / "autodoc.config.yaml"
    config_file.write_text(yaml.safe_dump(make_config(root, tmp_path / "out")))

    real_index = autodoc.stages.index

    def index_with_fakes(config, force=False):
        return real_index(config, llm=llm, embedder=FakeEmbedder(), store=FakeVectorStore(), force=force)

    monkeypatch.setattr(autodoc.stages, "index", index_with_fakes)
    return CliRunner().invoke(cli, ["--config", str(config_file), "index"])


def test_index_reports_counts(tmp_path, monkeypatch):
    result = _run_index(tmp_path, monkeypatch, FakeLLM())
    assert result.exit_code == 0, result.output
    assert "Summarized 4 node(s), reused 0" in result.output
    assert "Wrote 4 document(s)" in result.output
    assert "Embedded 4 chunk(s)" in result.output


def test_incomplete_index_still_reports_counts(tmp_path, monkeypatch):
    result = _run_index(tmp_path, monkeypatch, FakeLLM(transient={"lib/b.py": 99}))
    assert result.exit_code == 1
    assert "Summarized 1 node(s), reused 0" in result.output
    assert "1 failed, 2 blocked" in result.output
    assert "Wrote 1 document(s)" in result.output
    assert "Embedded 1 chunk(s)" in result.output
    assert "lib/b.py" in result.output
