# AGPL-3.0 License

"""
Action plan data structures produced by the reconciliation engine.
"""

from dataclasses import dataclass, field
from typing import Optional

from pr_annotator.algo.severity import Severity
from pr_annotator.reconcile.proposed import ProposedFinding


def _empty_distribution() -> dict[str, int]:
    return {severity.value: 0 for severity in Severity}


@dataclass
class ReconcileStats:
    """
    Counters describing what the engine filtered out.

    Attributes:
        proposed: Findings received from the feedback source
        dropped_invalid_anchor: Findings not anchored on an added line of the diff
        dropped_below_severity: Findings under the minimum severity
        dropped_duplicate: Findings at an anchor that already has a live finding
        severity_distribution: Normalized severities of anchor-valid findings
    """
    proposed: int = 0
    dropped_invalid_anchor: int = 0
    dropped_below_severity: int = 0
    dropped_duplicate: int = 0
    severity_distribution: dict[str, int] = field(default_factory=_empty_distribution)


@dataclass
class ActionPlan:
    """
    The create / minimize / delete actions for one reconciliation pass.

    ``to_minimize`` and ``to_delete`` are disjoint; an id requested for both
    is deleted.
    """
    to_create: list[ProposedFinding] = field(default_factory=list)
    summary: Optional[str] = None
    to_minimize: set[int] = field(default_factory=set)
    to_delete: set[int] = field(default_factory=set)
    stats: ReconcileStats = field(default_factory=ReconcileStats)

    @property
    def is_empty(self) -> bool:
        return not (self.to_create or self.summary or self.to_minimize or self.to_delete)

    def __str__(self) -> str:
        return (
            f"ActionPlan(create={len(self.to_create)}, summary={'yes' if self.summary else 'no'}, "
            f"minimize={len(self.to_minimize)}, delete={len(self.to_delete)})"
        )
