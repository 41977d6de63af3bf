# AGPL-3.0 License

"""
Unit tests for the unified diff line mapper.
"""

import pytest

from pr_annotator.algo.diff_mapper import (
    build_diff_index,
    iter_diff_lines,
    map_diff,
    render_numbered_diff,
)
from pr_annotator.algo.types import EDIT_TYPE, LineKind
from pr_annotator.errors import MalformedDiffError

from .conftest import SAMPLE_DIFF


class TestMapDiff:
    """Tests for map_diff."""

    def test_single_hunk_numbering(self):
        """Context and added lines advance the counter, deleted lines do not."""
        diff = (
            "--- a/f.py\n"
            "+++ b/f.py\n"
            "@@ -10,3 +20,4 @@\n"
            " a\n"
            "-b\n"
            "+c\n"
            "+d\n"
            " e\n"
        )
        files = map_diff(diff)

        assert len(files) == 1
        lines = files[0].lines
        assert [(line.kind, line.new_line_number) for line in lines] == [
            (LineKind.CONTEXT, 20),
            (LineKind.DELETED, None),
            (LineKind.ADDED, 21),
            (LineKind.ADDED, 22),
            (LineKind.CONTEXT, 23),
        ]

    def test_multiple_files_and_hunks(self):
        """Every hunk restarts numbering at its own new-range start."""
        files = map_diff(SAMPLE_DIFF)

        assert [f.filename for f in files] == ["src/app.py", "src/util.py"]
        app, util = files
        assert app.edit_type == EDIT_TYPE.MODIFIED
        assert util.edit_type == EDIT_TYPE.ADDED
        assert util.old_filename is None
        assert [line.new_line_number for line in util.lines] == [1, 2, 3]
        assert app.num_plus_lines == 2
        assert app.num_minus_lines == 1

    def test_second_hunk_restarts_counter(self):
        """Test that a second hunk numbers from its own new-range start."""
        diff = (
            "diff --git a/f.py b/f.py\n"
            "--- a/f.py\n"
            "+++ b/f.py\n"
            "@@ -1,2 +1,3 @@\n"
            " one\n"
            "+two\n"
            " three\n"
            "@@ -50,2 +51,2 @@ def later():\n"
            "-old\n"
            "+new\n"
            " tail\n"
        )
        files = map_diff(diff)

        hunks = files[0].hunks
        assert len(hunks) == 2
        assert hunks[1].section == "def later():"
        assert [(l.content, l.new_line_number) for l in hunks[1].lines] == [
            ("-old", None),
            ("+new", 51),
            (" tail", 52),
        ]

    def test_line_numbers_strictly_increase(self):
        """Numbered lines of a hunk form a contiguous ascending sequence."""
        for file in map_diff(SAMPLE_DIFF):
            for hunk in file.hunks:
                numbers = [l.new_line_number for l in hunk.lines if l.new_line_number is not None]
                assert numbers == list(range(hunk.new_start, hunk.new_start + len(numbers)))

    def test_deleted_file(self):
        """Test that a deleted file has no addressable lines."""
        diff = (
            "diff --git a/gone.py b/gone.py\n"
            "deleted file mode 100644\n"
            "--- a/gone.py\n"
            "+++ /dev/null\n"
            "@@ -1,2 +0,0 @@\n"
            "-x = 1\n"
            "-y = 2\n"
        )
        files = map_diff(diff)

        assert files[0].filename == "gone.py"
        assert files[0].edit_type == EDIT_TYPE.DELETED
        assert all(l.new_line_number is None for l in files[0].lines)
        assert build_diff_index(files) == {}

    def test_rename_and_binary(self):
        """Test that renamed and binary files are recognized without hunks."""
        diff = (
            "diff --git a/old/name.py b/new/name.py\n"
            "similarity index 100%\n"
            "rename from old/name.py\n"
            "rename to new/name.py\n"
            "diff --git a/logo.png b/logo.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/logo.png and b/logo.png differ\n"
        )
        renamed, binary = map_diff(diff)

        assert renamed.edit_type == EDIT_TYPE.RENAMED
        assert renamed.old_filename == "old/name.py"
        assert renamed.filename == "new/name.py"
        assert renamed.hunks == []
        assert binary.is_binary

    def test_binary_file_with_spaces_in_path(self):
        """Test that a binary section keeps the full path when it contains spaces."""
        diff = (
            "diff --git a/assets/my logo.png b/assets/my logo.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/assets/my logo.png and b/assets/my logo.png differ\n"
        )
        binary = map_diff(diff)[0]

        assert binary.filename == "assets/my logo.png"
        assert binary.old_filename == "assets/my logo.png"
        assert binary.is_binary

    def test_quoted_paths(self):
        """Test that quoted diff --git paths are unquoted."""
        diff = (
            'diff --git "a/docs/read me.txt" "b/docs/read me.txt"\n'
            "deleted file mode 100644\n"
            "Binary files a/docs/read me.txt and /dev/null differ\n"
        )
        deleted = map_diff(diff)[0]

        assert deleted.filename == "docs/read me.txt"
        assert deleted.edit_type == EDIT_TYPE.DELETED

    @pytest.mark.parametrize("separator", ["\x0c", "\x0b", "\x1c", "\x85", "\u2028", "\u2029", "\r"])
    def test_unicode_line_separators_are_content(self, separator):
        """Test that only newlines end diff lines, so other separators stay inside the content."""
        diff = (
            "--- a/x.js\n"
            "+++ b/x.js\n"
            "@@ -1,1 +1,3 @@\n"
            " ctx\n"
            f"+s = 'a{separator}b'\n"
            "+y\n"
        )
        lines = map_diff(diff)[0].lines

        assert [(l.kind, l.new_line_number) for l in lines] == [
            (LineKind.CONTEXT, 1),
            (LineKind.ADDED, 2),
            (LineKind.ADDED, 3),
        ]
        assert lines[1].content == f"+s = 'a{separator}b'"

    def test_crlf_line_endings(self):
        """Test that a trailing carriage return is stripped from each line."""
        diff = "--- a/f\r\n+++ b/f\r\n@@ -1 +1,2 @@\r\n a\r\n+b\r\n"
        files = map_diff(diff)

        assert files[0].filename == "f"
        assert [l.content for l in files[0].lines] == [" a", "+b"]

    def test_hunk_header_without_lengths(self):
        """A missing length in the header means a single line."""
        diff = "--- a/f\n+++ b/f\n@@ -3 +3 @@\n-a\n+b\n"
        lines = map_diff(diff)[0].lines

        assert [(l.kind, l.new_line_number) for l in lines] == [
            (LineKind.DELETED, None),
            (LineKind.ADDED, 3),
        ]

    def test_no_newline_marker_is_skipped(self):
        """Test that no-newline markers are not mapped as lines."""
        diff = (
            "--- a/f\n+++ b/f\n@@ -1 +1 @@\n"
            "-a\n\\ No newline at end of file\n"
            "+b\n\\ No newline at end of file\n"
        )
        lines = map_diff(diff)[0].lines

        assert len(lines) == 2

    def test_content_that_looks_like_a_header(self):
        """Hunk bodies are consumed by their declared ranges, not by prefixes."""
        diff = (
            "--- a/notes.md\n+++ b/notes.md\n@@ -1,1 +1,2 @@\n"
            "--- a removed rule\n"
            "+++ an added line\n"
            "+@@ not a header\n"
        )
        lines = map_diff(diff)[0].lines

        assert [l.kind for l in lines] == [LineKind.DELETED, LineKind.ADDED, LineKind.ADDED]
        assert lines[-1].new_line_number == 2

    def test_preamble_is_ignored(self):
        """Test that text before the first file header is ignored."""
        diff = "From 1234 Mon Sep 17 00:00:00 2001\nSubject: fix\n\n" + SAMPLE_DIFF
        assert len(map_diff(diff)) == 2

    def test_empty_diff(self):
        """Test that an empty diff maps to no files."""
        assert map_diff("") == []
        assert map_diff("\n\n") == []


class TestMalformedDiff:
    """Tests for diffs that cannot be mapped."""

    def test_none(self):
        """Test that a missing diff is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff(None)

    def test_no_file_structure(self):
        """Test that text without file sections is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff("this is not a diff\n")

    def test_malformed_hunk_header(self):
        """Test that a malformed hunk header is reported with its line number."""
        with pytest.raises(MalformedDiffError) as exc_info:
            map_diff("--- a/f\n+++ b/f\n@@ -x,1 +1,1 @@\n+a\n")
        assert exc_info.value.line_number == 3

    def test_hunk_before_file_header(self):
        """Test that a hunk without a file header is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff("@@ -1,1 +1,1 @@\n-a\n+b\n")

    def test_truncated_hunk(self):
        """Test that a hunk shorter than its declared range is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff("--- a/f\n+++ b/f\n@@ -1,3 +1,3 @@\n a\n b\n")

    def test_hunk_longer_than_declared(self):
        """Test that a hunk longer than its declared range is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff("--- a/f\n+++ b/f\n@@ -1,1 +1,1 @@\n a\n+b\n")

    def test_unexpected_marker_inside_hunk(self):
        """Test that an unknown line marker inside a hunk is rejected."""
        with pytest.raises(MalformedDiffError):
            map_diff("--- a/f\n+++ b/f\n@@ -1,2 +1,2 @@\n a\n*b\n")


class TestDiffIndex:
    """Tests for build_diff_index and render_numbered_diff."""

    def test_index_keys(self):
        """Test that the index covers context and added lines only."""
        index = build_diff_index(map_diff(SAMPLE_DIFF))

        assert set(index) == {
            ("src/app.py", 10), ("src/app.py", 11), ("src/app.py", 12),
            ("src/app.py", 13), ("src/app.py", 14),
            ("src/util.py", 1), ("src/util.py", 2), ("src/util.py", 3),
        }
        assert index[("src/app.py", 11)].kind == LineKind.ADDED
        assert index[("src/app.py", 10)].kind == LineKind.CONTEXT

    def test_iter_diff_lines_order(self):
        """Test that lines are flattened in diff order."""
        files = map_diff(SAMPLE_DIFF)
        lines = list(iter_diff_lines(files))

        assert lines[0].content == " import os"
        assert lines[-1].file == "src/util.py"
        assert len(lines) == 9

    def test_render_numbered_diff(self):
        """Test the line-numbered rendering handed to the model."""
        rendered = render_numbered_diff(map_diff(SAMPLE_DIFF))

        assert "   11: +import sys" in rendered
        assert '       : -print("old")' in rendered
        assert "--- /dev/null" in rendered
        assert "+++ b/src/util.py" in rendered
        assert "@@ -10,4 +10,5 @@ def main():" in rendered
