# AGPL-3.0 License

"""
Action execution result data structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ActionKind(str, Enum):
    CREATE_SUMMARY = "create_summary"
    CREATE_FINDING = "create_finding"
    MINIMIZE = "minimize"
    DELETE = "delete"


@dataclass
class ActionResult:
    """
    Outcome of one platform mutation.

    Attributes:
        kind: What was attempted
        target: Comment id, or "path:line" for new findings
        success: Whether the platform accepted the mutation
        message: Error text on failure
    """
    kind: ActionKind
    target: str
    success: bool
    message: str = ""

    def __str__(self) -> str:
        status = "✓ OK" if self.success else "✗ FAILED"
        suffix = f": {self.message}" if self.message else ""
        return f"[{self.kind.value.upper()}] {status} {self.target}{suffix}"


@dataclass
class ExecutionReport:
    """
    Per-action results of applying an ActionPlan. Failures are collected
    here instead of being raised.
    """
    results: list[ActionResult] = field(default_factory=list)

    def add(self, result: ActionResult):
        self.results.append(result)

    def extend(self, results: list[ActionResult]):
        self.results.extend(results)

    def succeeded(self, kind: Optional[ActionKind] = None) -> list[ActionResult]:
        return [r for r in self.results if r.success and (kind is None or r.kind == kind)]

    def failed(self, kind: Optional[ActionKind] = None) -> list[ActionResult]:
        return [r for r in self.results if not r.success and (kind is None or r.kind == kind)]

    @property
    def has_failures(self) -> bool:
        return any(not r.success for r in self.results)
