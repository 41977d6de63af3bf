# AGPL-3.0 License

"""
Unified diff line mapping.

Parses unified diff text into per-file hunks and attaches a new-file line
number to every context and added line. Within a hunk the counter starts at
the new-range start of the header (``@@ -a,b +c,d @@`` starts at ``c``) and
advances once per context or added line. Deleted lines get no number.
"""

import re
from typing import Iterable, Iterator, Optional

from pr_annotator.algo.types import DiffHunk, DiffLine, EDIT_TYPE, FilePatchInfo, LineKind
from pr_annotator.errors import MalformedDiffError

RE_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@[ ]?(.*)")
RE_DIFF_GIT_QUOTED = re.compile(r'^"(?:a/)?(.+)" "(?:b/)?(.+)"$')

DEV_NULL = "/dev/null"
NO_NEWLINE_MARKER = "\\"


def _strip_prefix(path: str) -> str:
    path = path.split("\t", 1)[0].strip()
    if path.startswith('"') and path.endswith('"') and len(path) > 1:
        path = path[1:-1]
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def _split_diff_lines(diff_text: str) -> list[str]:
    # Only "\n" ends a diff line; form feeds, U+2028 and the like are content
    lines = diff_text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _parse_diff_git_paths(line: str) -> Optional[tuple[str, str]]:
    """
    Extract (old, new) paths from a ``diff --git`` line.

    Paths may contain spaces, so the line is split on the `` b/`` separator.
    When that separator appears more than once the split giving identical
    halves wins, which is the common non-rename case.
    """
    rest = line[len("diff --git "):]
    quoted = RE_DIFF_GIT_QUOTED.match(rest)
    if quoted:
        return quoted.group(1), quoted.group(2)

    if rest.startswith("a/"):
        separator, skip = " b/", 2
    else:
        # --no-prefix output
        separator, skip = " ", 0
    candidates = []
    start = rest.find(separator)
    while start != -1:
        candidates.append((rest[skip:start], rest[start + len(separator):]))
        start = rest.find(separator, start + 1)
    if not candidates:
        return None
    for old_path, new_path in candidates:
        if old_path == new_path:
            return old_path, new_path
    return candidates[0]


class _DiffParser:
    """Single-pass state machine over the lines of a diff."""

    def __init__(self, diff_text: str):
        self.lines = _split_diff_lines(diff_text)
        self.files: list[FilePatchInfo] = []
        self.current: Optional[FilePatchInfo] = None
        self.hunk: Optional[DiffHunk] = None
        self.remaining_old = 0
        self.remaining_new = 0
        self.counter = 0
        # True between a "diff --git" line and the "---" header of the same file
        self.awaiting_paths = False

    @property
    def in_hunk(self) -> bool:
        return self.hunk is not None and (self.remaining_old > 0 or self.remaining_new > 0)

    def parse(self) -> list[FilePatchInfo]:
        for index, line in enumerate(self.lines, start=1):
            if self.in_hunk:
                self._hunk_line(line, index)
            else:
                self._header_line(line, index)

        if self.in_hunk:
            raise MalformedDiffError(
                f"Truncated hunk '{self.hunk.header}' in {self.current.filename}: "
                f"{self.remaining_old} old and {self.remaining_new} new lines missing",
                len(self.lines),
            )
        if not self.files and any(line.strip() for line in self.lines):
            raise MalformedDiffError("No file sections found in diff")
        return self.files

    def _start_file(self, old_path: Optional[str], new_path: Optional[str]):
        self.current = FilePatchInfo(filename=new_path or old_path or "", old_filename=old_path)
        self.files.append(self.current)
        self.hunk = None

    def _header_line(self, line: str, index: int):
        if line.startswith("diff --git "):
            paths = _parse_diff_git_paths(line)
            if paths is None:
                raise MalformedDiffError(f"Malformed file header: {line!r}", index)
            self._start_file(*paths)
            self.awaiting_paths = True
            return

        if line.startswith("--- "):
            # Plain `diff -u` output has no "diff --git" line, so "---" opens the file
            if not self.awaiting_paths:
                self._start_file(None, None)
            self.awaiting_paths = False
            old_path = _strip_prefix(line[4:])
            self.current.old_filename = None if old_path == DEV_NULL else old_path
            if old_path == DEV_NULL:
                self.current.edit_type = EDIT_TYPE.ADDED
            return

        if line.startswith("+++ "):
            if self.current is None:
                raise MalformedDiffError("'+++' header without a preceding '---' header", index)
            new_path = _strip_prefix(line[4:])
            if new_path == DEV_NULL:
                self.current.edit_type = EDIT_TYPE.DELETED
                self.current.filename = self.current.old_filename or self.current.filename
            else:
                self.current.filename = new_path
            return

        if line.startswith("@@"):
            self.awaiting_paths = False
            self._start_hunk(line, index)
            return

        if self.current is None:
            # Preamble before the first file (e.g. a commit message)
            return

        if self.current.hunks and line[:1] in ("+", "-") and line != "-- ":
            raise MalformedDiffError(
                f"Line outside of any hunk range in {self.current.filename}: {line!r}", index
            )

        if line.startswith("new file mode"):
            self.current.edit_type = EDIT_TYPE.ADDED
        elif line.startswith("deleted file mode"):
            self.current.edit_type = EDIT_TYPE.DELETED
        elif line.startswith("rename from "):
            self.current.old_filename = line[len("rename from "):]
            self.current.edit_type = EDIT_TYPE.RENAMED
        elif line.startswith("rename to "):
            self.current.filename = line[len("rename to "):]
            self.current.edit_type = EDIT_TYPE.RENAMED
        elif line.startswith("Binary files ") or line.startswith("GIT binary patch"):
            self.current.is_binary = True

    def _start_hunk(self, line: str, index: int):
        if self.current is None:
            raise MalformedDiffError("Hunk header before any file header", index)
        match = RE_HUNK_HEADER.match(line)
        if not match:
            raise MalformedDiffError(f"Malformed hunk header: {line!r}", index)

        old_start = int(match.group(1))
        old_length = int(match.group(2)) if match.group(2) is not None else 1
        new_start = int(match.group(3))
        new_length = int(match.group(4)) if match.group(4) is not None else 1

        self.hunk = DiffHunk(
            header=line,
            old_start=old_start,
            old_length=old_length,
            new_start=new_start,
            new_length=new_length,
            section=match.group(5) or "",
        )
        self.current.hunks.append(self.hunk)
        self.remaining_old = old_length
        self.remaining_new = new_length
        self.counter = new_start

    def _hunk_line(self, line: str, index: int):
        marker = line[:1]
        if marker == NO_NEWLINE_MARKER:
            return

        filename = self.current.filename
        if marker == "+":
            self._consume(index, new=True)
            self.hunk.lines.append(DiffLine(filename, LineKind.ADDED, line, self.counter))
            self.counter += 1
        elif marker == "-":
            self._consume(index, old=True)
            self.hunk.lines.append(DiffLine(filename, LineKind.DELETED, line))
        elif marker == " " or line == "":
            # Some transports strip the single space of blank context lines
            self._consume(index, old=True, new=True)
            self.hunk.lines.append(DiffLine(filename, LineKind.CONTEXT, line or " ", self.counter))
            self.counter += 1
        else:
            raise MalformedDiffError(f"Unexpected line inside hunk '{self.hunk.header}': {line!r}", index)

    def _consume(self, index: int, old: bool = False, new: bool = False):
        if (old and self.remaining_old <= 0) or (new and self.remaining_new <= 0):
            raise MalformedDiffError(f"Hunk '{self.hunk.header}' is longer than its declared range", index)
        if old:
            self.remaining_old -= 1
        if new:
            self.remaining_new -= 1


def map_diff(diff_text: str) -> list[FilePatchInfo]:
    """
    Parse unified diff text into files, hunks and numbered lines.

    Args:
        diff_text: Unified diff, possibly covering several files and hunks

    Returns:
        Files in input order; an empty diff yields an empty list

    Raises:
        MalformedDiffError: The text has no file/hunk structure, a hunk header
            is malformed, or a hunk body does not match its declared ranges
    """
    if diff_text is None:
        raise MalformedDiffError("No diff text")
    return _DiffParser(diff_text).parse()


def iter_diff_lines(files: Iterable[FilePatchInfo]) -> Iterator[DiffLine]:
    """Yield every DiffLine of every file, in input order."""
    for file in files:
        for hunk in file.hunks:
            yield from hunk.lines


def build_diff_index(files: Iterable[FilePatchInfo]) -> dict[tuple[str, int], DiffLine]:
    """
    Index the addressable lines of a diff by ``(file, new_line_number)``.

    Deleted lines have no new-file position and are not indexed. A
    well-formed diff has at most one line per key; the first one wins.
    """
    index: dict[tuple[str, int], DiffLine] = {}
    for line in iter_diff_lines(files):
        if line.new_line_number is None:
            continue
        index.setdefault((line.file, line.new_line_number), line)
    return index


def render_numbered_diff(files: Iterable[FilePatchInfo]) -> str:
    """
    Render a diff with the new-file line number in front of every line.

    This is the form handed to the language model so it can anchor inline
    comments. Deleted lines get an empty gutter.
    """
    output: list[str] = []
    for file in files:
        old_name = file.old_filename or file.filename
        output.append(f"diff --git a/{old_name} b/{file.filename}")
        output.append(f"--- a/{old_name}" if file.old_filename else f"--- {DEV_NULL}")
        output.append(f"+++ {DEV_NULL}" if file.edit_type == EDIT_TYPE.DELETED else f"+++ b/{file.filename}")
        for hunk in file.hunks:
            output.append(hunk.header)
            for line in hunk.lines:
                if line.new_line_number is None:
                    output.append(f"       : {line.content}")
                else:
                    output.append(f"{line.new_line_number:>5}: {line.content}")
    return "\n".join(output)
