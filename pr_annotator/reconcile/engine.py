# AGPL-3.0 License

"""
Review reconciliation engine.

Merges freshly proposed findings with the bot's existing annotations into a
minimal action plan. The computation is pure: no I/O happens here, all
platform reads come before it and all mutations after it.
"""

from dataclasses import replace
from typing import Iterable, Mapping, Optional, Union

from pr_annotator.algo.severity import Severity, normalize_severity, rank
from pr_annotator.algo.types import DiffLine, LineKind
from pr_annotator.algo.utils import coerce_positive_int
from pr_annotator.log import get_logger
from pr_annotator.reconcile.action_plan import ActionPlan, ReconcileStats
from pr_annotator.reconcile.annotation import Annotation, AnnotationRole, AnnotationScope, LifecycleState
from pr_annotator.reconcile.proposed import ProposedFinding


def _coerce_ids(ids: Iterable, label: str) -> set[int]:
    result = set()
    for raw in ids or ():
        comment_id = coerce_positive_int(raw)
        if comment_id is None:
            get_logger().warning(f"Ignoring invalid comment id in {label} request: {raw!r}")
            continue
        result.add(comment_id)
    return result


def _validate_anchors(
    proposed: Iterable[ProposedFinding],
    diff_index: Mapping[tuple[str, int], DiffLine],
    stats: ReconcileStats,
) -> list[ProposedFinding]:
    """Keep findings anchored on an added line of the diff."""
    valid = []
    for finding in proposed:
        stats.proposed += 1
        anchor = finding.anchor
        target = diff_index.get(anchor) if anchor else None
        if target is None or target.kind != LineKind.ADDED:
            stats.dropped_invalid_anchor += 1
            get_logger().debug(f"Dropping finding at {finding.file}:{finding.line}: not an added line in the diff")
            continue
        valid.append(finding)
    return valid


def _filter_severity(
    findings: list[ProposedFinding],
    min_severity: Severity,
    stats: ReconcileStats,
) -> list[ProposedFinding]:
    """Normalize severities and keep findings at or above the threshold."""
    threshold = rank(min_severity)
    kept = []
    for finding in findings:
        severity = normalize_severity(finding.severity)
        stats.severity_distribution[severity.value] += 1
        if rank(severity) < threshold:
            stats.dropped_below_severity += 1
            continue
        kept.append(replace(finding, severity=severity.value))
    return kept


def _covered_anchors(prior: list[Annotation]) -> set[tuple[str, int]]:
    """Anchors that already carry a live finding, including ones requested for deletion."""
    return {
        annotation.anchor
        for annotation in prior
        if annotation.role == AnnotationRole.FINDING
        and annotation.scope == AnnotationScope.LINE
        and annotation.lifecycle_state == LifecycleState.ACTIVE
        and annotation.anchor is not None
    }


def _deduplicate(
    findings: list[ProposedFinding],
    covered: set[tuple[str, int]],
    stats: ReconcileStats,
) -> list[ProposedFinding]:
    """
    Drop findings at covered anchors, and repeated anchors within the batch.

    Location-level only: bodies are never compared. Within the batch the
    most severe finding of an anchor wins (the first one on ties), so the
    choice does not depend on the severity threshold.
    """
    best: dict[tuple[str, int], int] = {}
    for position, finding in enumerate(findings):
        current = best.get(finding.anchor)
        if current is None or rank(finding.severity) > rank(findings[current].severity):
            best[finding.anchor] = position

    kept = []
    for position, finding in enumerate(findings):
        if finding.anchor in covered or best[finding.anchor] != position:
            stats.dropped_duplicate += 1
            get_logger().info(f"Skipping duplicate comment at {finding.file}:{finding.line}")
            continue
        kept.append(finding)
    return kept


def reconcile(
    diff_index: Mapping[tuple[str, int], DiffLine],
    prior_annotations: Iterable[Annotation],
    proposed: Iterable[ProposedFinding],
    explicit_deletes: Iterable[int] = (),
    explicit_minimizes: Iterable[int] = (),
    min_severity: Union[Severity, str] = Severity.LOW,
    *,
    summary: Optional[str] = None,
    minimize_outdated: bool = False,
    inline_enabled: bool = True,
) -> ActionPlan:
    """
    Compute the action plan for one review pass.

    Steps, in order: anchor validation, severity filter, location dedup
    against live prior findings, minimize set, delete set, conflict
    resolution (delete wins). Bad proposals are dropped and counted, never
    raised.

    Args:
        diff_index: DiffLines keyed by (file, new_line_number)
        prior_annotations: The bot's classified annotations on this PR
        proposed: Findings from the feedback source
        explicit_deletes: Annotation ids the caller wants deleted
        explicit_minimizes: Annotation ids the caller wants minimized
        min_severity: Findings ranked below this are dropped
        summary: Summary body to post, if any
        minimize_outdated: Also minimize every outdated prior annotation
        inline_enabled: When False no findings are created, only the summary

    Returns:
        The ActionPlan with its filtering statistics
    """
    logger = get_logger()
    prior = list(prior_annotations)
    stats = ReconcileStats()
    threshold = normalize_severity(min_severity)

    to_delete = _coerce_ids(explicit_deletes, "delete")

    anchored = _validate_anchors(proposed, diff_index, stats)
    severe_enough = _filter_severity(anchored, threshold, stats)
    to_create = _deduplicate(severe_enough, _covered_anchors(prior), stats)

    to_minimize = _coerce_ids(explicit_minimizes, "minimize")
    if minimize_outdated:
        to_minimize |= {a.id for a in prior if a.lifecycle_state == LifecycleState.OUTDATED}
    to_minimize -= {a.id for a in prior if a.lifecycle_state == LifecycleState.MINIMIZED}
    to_minimize -= to_delete

    if not inline_enabled and to_create:
        logger.info(f"Inline comments disabled; not posting {len(to_create)} finding(s)")
        to_create = []

    summary = summary.strip() if isinstance(summary, str) else None

    plan = ActionPlan(
        to_create=to_create,
        summary=summary or None,
        to_minimize=to_minimize,
        to_delete=to_delete,
        stats=stats,
    )

    if stats.dropped_invalid_anchor:
        logger.info(f"Dropped {stats.dropped_invalid_anchor} finding(s) not anchored on an added line")
    if stats.dropped_below_severity:
        logger.info(f"Filtered {stats.dropped_below_severity} finding(s) below {threshold.value} severity level")
    if stats.dropped_duplicate:
        logger.info(f"Skipped {stats.dropped_duplicate} duplicate finding(s) at existing locations")
    logger.info(f"Reconciled {stats.proposed} proposed finding(s) into {plan}")
    return plan
