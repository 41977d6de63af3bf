# AGPL-3.0 License

"""
Diff data structures shared by the line mapper and the reconciliation engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EDIT_TYPE(Enum):
    ADDED = 1
    DELETED = 2
    MODIFIED = 3
    RENAMED = 4
    UNKNOWN = 5


class LineKind(str, Enum):
    CONTEXT = "context"
    ADDED = "added"
    DELETED = "deleted"


@dataclass(frozen=True)
class DiffLine:
    """
    One addressable line of a unified diff.

    ``new_line_number`` is set only for lines that exist in the new version
    of the file (context and added lines).
    """
    file: str
    kind: LineKind
    content: str
    new_line_number: Optional[int] = None

    @property
    def is_added(self) -> bool:
        return self.kind == LineKind.ADDED


@dataclass
class DiffHunk:
    """
    A single ``@@ -a,b +c,d @@`` block of a file diff.
    """
    header: str
    old_start: int
    old_length: int
    new_start: int
    new_length: int
    section: str = ""
    lines: list[DiffLine] = field(default_factory=list)


@dataclass
class FilePatchInfo:
    """
    All hunks of one file in a unified diff.

    Attributes:
        filename: Post-change path (the old path for deleted files)
        old_filename: Pre-change path, None for added files
        edit_type: Kind of change derived from the file headers
        hunks: Hunks in input order
        is_binary: True when git reported a binary change without hunks
    """
    filename: str
    old_filename: Optional[str] = None
    edit_type: EDIT_TYPE = EDIT_TYPE.MODIFIED
    hunks: list[DiffHunk] = field(default_factory=list)
    is_binary: bool = False

    @property
    def lines(self) -> list[DiffLine]:
        return [line for hunk in self.hunks for line in hunk.lines]

    @property
    def num_plus_lines(self) -> int:
        return sum(1 for line in self.lines if line.kind == LineKind.ADDED)

    @property
    def num_minus_lines(self) -> int:
        return sum(1 for line in self.lines if line.kind == LineKind.DELETED)
