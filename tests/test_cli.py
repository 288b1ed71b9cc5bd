"""
Tests for the command-line entry point.
"""
import os

import pytest

from chatpatch.cli import main
from chatpatch.editing.metrics import log_review_metric


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("CHATPATCH_"):
            monkeypatch.delenv(key, raising=False)


def _project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "billing.py").write_text("def charge():\n    pass\n")
    (tmp_path / "src" / "users.py").write_text("def signup():\n    pass\n")
    return str(tmp_path)


def test_stats(tmp_path, capsys):
    root = _project(tmp_path)
    log_review_metric({"outcome": "accepted", "action": "update", "added": 2, "removed": 1}, root)

    code = main(["--root", root, "--config", str(tmp_path / "none.yaml"), "stats"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Reviewed edits : 1" in out
    assert "Accept rate    : 100.0%" in out


def test_context_heuristic(tmp_path, capsys):
    root = _project(tmp_path)

    code = main(["--root", root, "--config", str(tmp_path / "none.yaml"),
                 "context", "billing charge fails", "--no-llm"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Selected via heuristic" in out
    assert "src/billing.py" in out
    assert "src/users.py" not in out


def test_apply_without_patches(tmp_path, capsys):
    root = _project(tmp_path)
    reply = tmp_path / "reply.txt"
    reply.write_text("Nothing to change here.")

    code = main(["--root", root, "--config", str(tmp_path / "none.yaml"),
                 "apply", str(reply)])

    assert code == 0
    assert "No patches found." in capsys.readouterr().out


def test_requires_command():
    with pytest.raises(SystemExit):
        main([])
