# AGPL-3.0 License

"""
Annotation data structures: comments this bot has already posted on a PR.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Optional

from pr_annotator.algo.severity import Severity


class AnnotationScope(str, Enum):
    GENERAL = "general"
    LINE = "line"


class AnnotationRole(str, Enum):
    SUMMARY = "summary"
    FINDING = "finding"


class LifecycleState(str, Enum):
    """
    Lifecycle of an annotation across commits.

    active -> outdated -> minimized, and active|outdated -> deleted. Deleted
    annotations disappear from the listing, and nothing returns to active.
    """
    ACTIVE = "active"
    OUTDATED = "outdated"
    MINIMIZED = "minimized"


@dataclass(frozen=True)
class Annotation:
    """
    A classified comment authored by this bot.

    ``file`` and ``line`` are set for line-anchored annotations only, and the
    pair is meaningful only while the annotation is not outdated.
    """

    id: int
    scope: AnnotationScope
    role: AnnotationRole
    lifecycle_state: LifecycleState = LifecycleState.ACTIVE
    body: str = ""
    file: Optional[str] = None
    line: Optional[int] = None
    severity: Optional[Severity] = None
    node_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def anchor(self) -> Optional[tuple[str, int]]:
        """``(file, line)`` while the position still resolves, else None."""
        if self.scope != AnnotationScope.LINE or self.lifecycle_state == LifecycleState.OUTDATED:
            return None
        if not self.file or self.line is None:
            return None
        return self.file, self.line

    @property
    def is_active(self) -> bool:
        return self.lifecycle_state == LifecycleState.ACTIVE

    @property
    def is_outdated(self) -> bool:
        return self.lifecycle_state == LifecycleState.OUTDATED

    @property
    def is_minimized(self) -> bool:
        return self.lifecycle_state == LifecycleState.MINIMIZED

    @property
    def is_summary(self) -> bool:
        return self.role == AnnotationRole.SUMMARY

    def to_prompt_dict(self) -> dict:
        """Shape handed to the language model as existing-comment context."""
        return {
            "id": self.id,
            "type": "review" if self.scope == AnnotationScope.LINE else "issue",
            "path": self.file,
            "line": self.line,
            "is_summary": self.is_summary,
            "is_outdated": self.is_outdated,
            "is_minimized": self.is_minimized,
            "severity": self.severity.value if self.severity else None,
            "body": self.body,
        }


class AnnotationSet:
    """
    The bot's prior annotations on one PR, indexed by id.

    Rebuilt from the platform listing on every run.
    """

    def __init__(self, annotations: Iterable[Annotation] = ()):
        self._by_id: dict[int, Annotation] = {}
        for annotation in annotations:
            self._by_id.setdefault(annotation.id, annotation)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, annotation_id) -> bool:
        return annotation_id in self._by_id

    def get(self, annotation_id: int) -> Optional[Annotation]:
        return self._by_id.get(annotation_id)

    def summaries(self) -> list[Annotation]:
        return [a for a in self if a.role == AnnotationRole.SUMMARY]

    def findings(self) -> list[Annotation]:
        return [a for a in self if a.role == AnnotationRole.FINDING]

    def active_findings(self) -> list[Annotation]:
        return [a for a in self.findings() if a.is_active]

    def outdated(self) -> list[Annotation]:
        return [a for a in self if a.is_outdated]
