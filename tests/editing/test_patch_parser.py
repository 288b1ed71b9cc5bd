"""Tests for the patch block parser."""

import pytest

from chatpatch.editing.classifier import EditAction
from chatpatch.editing.patch_parser import (
    ParsedFileEdit, has_patch_marker, parse_patch_blocks,
)


SINGLE_UPDATE = "***PATCH src/a.ts\n***OLD:\nfoo\n***NEW:\nbar\n"

MULTI_FILE = """\
Sure, here are the changes:

***PATCH src/auth.py
***OLD:
def login():
    pass
***NEW:
def login(user):
    return user.check()
***PATCH src/api.py
***OLD:
import os
***NEW:
import os
import sys
***PATCH docs/old.md
***OLD:
# Old docs
***NEW:
"""


class TestParse:
    def test_scenario_single_update(self):
        edits = parse_patch_blocks(SINGLE_UPDATE)

        assert len(edits) == 1
        edit = edits[0]
        assert edit.path == "src/a.ts"
        assert edit.action is EditAction.UPDATE
        assert edit.content == "bar"
        assert edit.old_content == "foo"

    def test_multi_file_in_source_order(self):
        edits = parse_patch_blocks(MULTI_FILE)

        assert [e.path for e in edits] == ["src/auth.py", "src/api.py", "docs/old.md"]
        assert edits[0].content == "def login(user):\n    return user.check()"
        assert edits[1].content == "import os\nimport sys"
        assert edits[2].action is EditAction.DELETE
        assert edits[2].content == ""

    def test_create_when_old_empty(self):
        edits = parse_patch_blocks("***PATCH src/new.js\n***OLD:\n***NEW:\nconsole.log(1)")

        assert len(edits) == 1
        assert edits[0].action is EditAction.CREATE
        assert edits[0].content == "console.log(1)"
        assert edits[0].old_content == ""

    def test_both_sections_empty_is_update(self):
        edits = parse_patch_blocks("***PATCH src/x.ts\n***OLD:\n***NEW:\n")

        assert len(edits) == 1
        assert edits[0].action is EditAction.UPDATE
        assert edits[0].content == ""

    def test_crlf_is_normalized(self):
        edits = parse_patch_blocks(SINGLE_UPDATE.replace("\n", "\r\n"))

        assert len(edits) == 1
        assert edits[0].path == "src/a.ts"
        assert edits[0].content == "bar"
        assert "\r" not in edits[0].content

    def test_same_path_twice_gives_independent_edits(self):
        text = SINGLE_UPDATE + "***PATCH src/a.ts\n***OLD:\nbar\n***NEW:\nbaz\n"
        edits = parse_patch_blocks(text)

        assert len(edits) == 2
        assert [e.content for e in edits] == ["bar", "baz"]

    def test_inner_blank_lines_preserved(self):
        text = "***PATCH a.py\n***OLD:\nx\n***NEW:\n\nline1\n\nline2\n\n"
        edits = parse_patch_blocks(text)

        assert edits[0].content == "\nline1\n\nline2\n"

    def test_reason_line(self):
        text = "***PATCH a.py\n***REASON: fix typo\n***OLD:\nteh\n***NEW:\nthe\n"
        edits = parse_patch_blocks(text)

        assert edits[0].reason == "fix typo"
        assert edits[0].old_content == "teh"

    @pytest.mark.parametrize("n", [1, 3, 7])
    def test_n_blocks_yield_n_edits(self, n):
        text = "".join(
            f"***PATCH f{i}.py\n***OLD:\nold{i}\n***NEW:\nnew{i}\n" for i in range(n)
        )
        edits = parse_patch_blocks(text)

        assert [e.path for e in edits] == [f"f{i}.py" for i in range(n)]
        assert all(isinstance(e, ParsedFileEdit) for e in edits)


class TestNoChangeBlocks:
    @pytest.mark.parametrize("path", ["NONE", "none", "NoNe", "  None  "])
    def test_none_path_excluded(self, path):
        text = f"***PATCH {path}\n***OLD:\n***NEW:\n" + SINGLE_UPDATE
        edits = parse_patch_blocks(text)

        assert [e.path for e in edits] == ["src/a.ts"]

    def test_empty_path_excluded(self):
        text = "***PATCH   \n***OLD:\na\n***NEW:\nb\n"

        assert parse_patch_blocks(text) == []

    def test_bare_none_marker(self):
        assert parse_patch_blocks("No changes needed.\n***PATCH NONE") == []


class TestMalformed:
    def test_missing_new_section_skipped(self):
        text = "***PATCH a.py\n***OLD:\nfoo\n" + SINGLE_UPDATE
        edits = parse_patch_blocks(text)

        assert [e.path for e in edits] == ["src/a.ts"]

    def test_missing_old_section_skipped(self):
        assert parse_patch_blocks("***PATCH a.py\n***NEW:\nfoo\n") == []

    def test_header_without_body_skipped(self):
        assert parse_patch_blocks("***PATCH a.py") == []

    def test_plain_text(self):
        assert parse_patch_blocks("Just an explanation, no patches.") == []

    def test_empty_input(self):
        assert parse_patch_blocks("") == []


class TestHasPatchMarker:
    def test_detects_marker(self):
        assert has_patch_marker("text\n***PATCH a.py\n") is True

    def test_absent(self):
        assert has_patch_marker("***OLD: only") is False
