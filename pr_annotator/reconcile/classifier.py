# AGPL-3.0 License

"""
Classification of platform comments into the bot's own annotations.
"""

from typing import Iterable, Optional

from pr_annotator.algo.severity import normalize_severity, parse_severity_header
from pr_annotator.git_providers.git_provider import PlatformComment
from pr_annotator.log import get_logger
from pr_annotator.reconcile.annotation import (
    Annotation,
    AnnotationRole,
    AnnotationScope,
    AnnotationSet,
    LifecycleState,
)

DEFAULT_SUMMARY_MARKER = "# 📋 PR Summary"


def is_summary_body(body: str, summary_marker: str = DEFAULT_SUMMARY_MARKER) -> bool:
    return bool(body) and bool(summary_marker) and summary_marker in body


def _lifecycle_state(comment: PlatformComment) -> LifecycleState:
    # Minimized wins over outdated: the collapse is an explicit action
    if comment.is_minimized:
        return LifecycleState.MINIMIZED
    if comment.comment_type == "review" and not comment.position_valid:
        return LifecycleState.OUTDATED
    return LifecycleState.ACTIVE


def classify_comment(comment: PlatformComment, summary_marker: str = DEFAULT_SUMMARY_MARKER) -> Annotation:
    """
    Turn one of the bot's own comments into an Annotation.

    Outdatedness comes only from the platform's position data; the current
    diff alone cannot tell whether a comment followed its line across commits.
    """
    if comment.comment_type == "review":
        scope = AnnotationScope.LINE
        role = AnnotationRole.FINDING
    else:
        scope = AnnotationScope.GENERAL
        role = AnnotationRole.SUMMARY if is_summary_body(comment.body, summary_marker) else AnnotationRole.FINDING

    severity = None
    if role == AnnotationRole.FINDING:
        severity = parse_severity_header(comment.body) or normalize_severity(None)

    return Annotation(
        id=comment.id,
        scope=scope,
        role=role,
        lifecycle_state=_lifecycle_state(comment),
        body=comment.body,
        file=comment.path if scope == AnnotationScope.LINE else None,
        line=comment.line if scope == AnnotationScope.LINE else None,
        severity=severity,
        node_id=comment.node_id,
        created_at=comment.created_at,
    )


def classify_comments(
    raw_comments: Iterable[PlatformComment],
    self_identity: str,
    summary_marker: Optional[str] = None,
) -> AnnotationSet:
    """
    Keep the comments authored by ``self_identity`` and classify them.

    Comments from anyone else are dropped here and are never seen by the
    reconciliation engine.

    Args:
        raw_comments: Every comment listed on the PR
        self_identity: Login the bot posts under (compared case-insensitively)
        summary_marker: Header token identifying summary comments

    Returns:
        The bot's annotations
    """
    logger = get_logger()
    marker = DEFAULT_SUMMARY_MARKER if summary_marker is None else summary_marker
    identity = (self_identity or "").strip().lower()
    if not identity:
        logger.warning("No bot identity available; treating every comment as foreign")
        return AnnotationSet()

    annotations = []
    foreign = 0
    for comment in raw_comments:
        if (comment.author or "").lower() != identity:
            foreign += 1
            continue
        annotations.append(classify_comment(comment, marker))

    result = AnnotationSet(annotations)
    logger.info(
        f"Classified {len(result)} bot annotation(s): {len(result.summaries())} summary, "
        f"{len(result.active_findings())} active finding(s), {len(result.outdated())} outdated; "
        f"ignored {foreign} comment(s) from other authors"
    )
    return result
