# AGPL-3.0 License

"""
Review reconciliation for PR-Annotator.

This package classifies the bot's existing comments on a pull request and
merges them with newly proposed findings into a minimal, idempotent action
plan. Nothing is persisted: all state is rebuilt from the diff and the
platform's comment listing on every run.
"""

from pr_annotator.reconcile.action_plan import ActionPlan, ReconcileStats
from pr_annotator.reconcile.annotation import (
    Annotation,
    AnnotationRole,
    AnnotationScope,
    AnnotationSet,
    LifecycleState,
)
from pr_annotator.reconcile.classifier import classify_comment, classify_comments
from pr_annotator.reconcile.engine import reconcile
from pr_annotator.reconcile.proposed import ProposedFinding

__all__ = [
    "ActionPlan",
    "ReconcileStats",
    "Annotation",
    "AnnotationRole",
    "AnnotationScope",
    "AnnotationSet",
    "LifecycleState",
    "ProposedFinding",
    "classify_comment",
    "classify_comments",
    "reconcile",
]
