# AGPL-3.0 License

"""
Proposed findings: inline comments suggested by the feedback source, not yet posted.
"""

from dataclasses import dataclass
from typing import Any, Optional

from pr_annotator.algo.utils import coerce_positive_int


@dataclass
class ProposedFinding:
    """
    A candidate line-anchored comment.

    Every field comes from model output and is untrusted: ``line`` may be
    None when the model sent something that is not a line number, and
    ``severity`` is the raw string until the engine normalizes it.
    """

    file: str
    line: Optional[int]
    body: str
    severity: str = "low"

    @property
    def anchor(self) -> Optional[tuple[str, int]]:
        if not self.file or self.line is None:
            return None
        return self.file, self.line

    def to_dict(self) -> dict:
        return {
            "file": self.file,
            "line": self.line,
            "body": self.body,
            "severity": self.severity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProposedFinding":
        """Build from a model tool-call payload; never raises on bad field values."""
        file = data.get("file") if isinstance(data.get("file"), str) else ""
        body = data.get("body") if isinstance(data.get("body"), str) else ""
        severity = data.get("severity")
        return cls(
            file=file.strip(),
            line=coerce_positive_int(data.get("line")),
            body=body,
            severity=severity if isinstance(severity, str) else "",
        )
