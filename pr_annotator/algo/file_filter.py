# AGPL-3.0 License

"""
Ignore-pattern filtering of changed files.
"""

from typing import Optional, Union

import pathspec

from pr_annotator.algo.types import FilePatchInfo


class FileFilter:
    """
    Excludes files matching gitignore-style patterns from review.

    Files removed here never reach the diff index, so findings the model
    anchors on them are later dropped as off-diff.
    """

    def __init__(self, ignore_patterns: Optional[Union[str, list[str]]] = None):
        """
        Args:
            ignore_patterns: Glob patterns (gitwildmatch syntax), as a list or a
                comma-separated string; blank entries are skipped
        """
        if isinstance(ignore_patterns, str):
            ignore_patterns = ignore_patterns.split(",")
        self.ignore_patterns = [p.strip() for p in (ignore_patterns or []) if p and p.strip()]
        self._ignore_spec = (
            pathspec.PathSpec.from_lines('gitwildmatch', self.ignore_patterns)
            if self.ignore_patterns else None
        )

    def is_ignored(self, file_path: str) -> bool:
        if self._ignore_spec is None:
            return False
        return self._ignore_spec.match_file(file_path)

    def split(self, files: list[FilePatchInfo]) -> tuple[list[FilePatchInfo], list[FilePatchInfo]]:
        """
        Partition files into (reviewable, ignored), preserving order.
        """
        reviewable, ignored = [], []
        for file in files:
            (ignored if self.is_ignored(file.filename) else reviewable).append(file)
        return reviewable, ignored
