# AGPL-3.0 License

"""
PR Reviewer tool - reviews a PR and reconciles the bot's annotations.

One run fetches the diff and the bot's existing comments, asks the feedback
source for a review, reconciles everything into an action plan and applies it.
"""

from dataclasses import dataclass, field
from functools import partial
from typing import Optional

from pr_annotator.algo.ai_handlers.base_ai_handler import BaseAiHandler
from pr_annotator.algo.ai_handlers.litellm_ai_handler import LiteLLMAIHandler
from pr_annotator.algo.diff_mapper import build_diff_index, map_diff, render_numbered_diff
from pr_annotator.algo.file_filter import FileFilter
from pr_annotator.algo.severity import Severity
from pr_annotator.config_loader import get_min_severity, get_settings
from pr_annotator.executor.action_executor import ActionExecutor
from pr_annotator.executor.action_result import ActionKind, ExecutionReport
from pr_annotator.feedback.review_feedback import AIFeedbackSource, ReviewFeedback
from pr_annotator.git_providers import get_git_provider
from pr_annotator.git_providers.git_provider import GitProvider
from pr_annotator.log import get_logger
from pr_annotator.reconcile.action_plan import ActionPlan
from pr_annotator.reconcile.annotation import AnnotationSet
from pr_annotator.reconcile.classifier import classify_comments
from pr_annotator.reconcile.engine import reconcile

SUMMARY_CLEANUP_MODES = ("delete", "minimize", "keep")


@dataclass
class ReviewRunReport:
    """
    Counters of one review run, exposed as action outputs.
    """
    skipped: bool = False
    summary: str = ""
    comments_posted: int = 0
    duplicates_skipped: int = 0
    invalid_anchors_dropped: int = 0
    below_severity_dropped: int = 0
    minimized: int = 0
    deleted: int = 0
    failed_actions: int = 0
    severity_distribution: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_results(cls, plan: ActionPlan, execution: ExecutionReport) -> "ReviewRunReport":
        return cls(
            summary=plan.summary or "",
            comments_posted=len(execution.succeeded(ActionKind.CREATE_FINDING)),
            duplicates_skipped=plan.stats.dropped_duplicate,
            invalid_anchors_dropped=plan.stats.dropped_invalid_anchor,
            below_severity_dropped=plan.stats.dropped_below_severity,
            minimized=len(execution.succeeded(ActionKind.MINIMIZE)),
            deleted=len(execution.succeeded(ActionKind.DELETE)),
            failed_actions=len(execution.failed()),
            severity_distribution=dict(plan.stats.severity_distribution),
        )

    def to_outputs(self) -> dict[str, str]:
        """Flat string outputs, e.g. for ``GITHUB_OUTPUT``."""
        distribution = ", ".join(f'"{k}": {v}' for k, v in self.severity_distribution.items())
        return {
            "summary": self.summary,
            "comments_count": str(self.comments_posted),
            "duplicates_skipped": str(self.duplicates_skipped),
            "minimized_comments_count": str(self.minimized),
            "deleted_comments_count": str(self.deleted),
            "failed_actions_count": str(self.failed_actions),
            "severity_distribution": "{" + distribution + "}",
        }


class PRReviewer:
    """
    PR Reviewer tool - produces and reconciles AI review annotations.
    """

    def __init__(
        self,
        pr_url: str,
        args: list = None,
        ai_handler: partial[BaseAiHandler] = LiteLLMAIHandler,
        git_provider: Optional[GitProvider] = None,
        feedback_source: Optional[AIFeedbackSource] = None,
        triggered_by_command: bool = False,
    ):
        """
        Initialize the PR Reviewer tool.

        Args:
            pr_url: URL of the PR to review
            args: Extra words after the command, used as custom review instructions
            ai_handler: AI handler for the feedback source
            git_provider: Provider override (defaults to the configured provider)
            feedback_source: Feedback source override
            triggered_by_command: True when a /review comment started the run
        """
        self.pr_url = pr_url
        self._owns_provider = git_provider is None
        self.git_provider = git_provider or get_git_provider()(pr_url)
        self.feedback_source = feedback_source or AIFeedbackSource(ai_handler)
        self.instructions = " ".join(args or []).strip() or None
        self.triggered_by_command = triggered_by_command
        self.logger = get_logger()

    async def run(self) -> ReviewRunReport:
        """
        Execute one review pass.

        Everything up to and including reconciliation is read-only, so a
        fatal error (unparsable diff, no feedback) leaves the PR untouched.

        Raises:
            MalformedDiffError: The PR diff cannot be parsed
            FeedbackUnavailableError: The feedback source produced nothing usable
            GitProviderError: A read call to the platform failed
        """
        try:
            return await self._review()
        finally:
            if self._owns_provider:
                await self.git_provider.close()

    async def _review(self) -> ReviewRunReport:
        settings = get_settings()
        self.logger.info(f"Reviewing PR: {self.pr_url}")
        publish = settings.config.get("publish_output", True)

        if self.triggered_by_command and publish:
            await self._acknowledge_command()

        diff_text = await self.git_provider.get_pr_diff()
        self.logger.info(f"Diff size: {len(diff_text)} characters")
        files = map_diff(diff_text)

        reviewable, ignored = FileFilter(settings.config.get("ignore_patterns", [])).split(files)
        if ignored:
            self.logger.info(f"Ignored {len(ignored)} file(s) based on patterns")
        if not reviewable:
            self.logger.info("No files to review after filtering")
            if publish:
                await self.git_provider.publish_comment(settings.config.no_files_message)
            return ReviewRunReport(skipped=True)
        self.logger.info(f"Reviewing {len(reviewable)} file(s)")

        diff_index = build_diff_index(reviewable)
        numbered_diff = render_numbered_diff(reviewable)

        bot_identity = await self.git_provider.get_bot_identity()
        annotations = classify_comments(
            await self.git_provider.list_comments(),
            bot_identity,
            settings.config.get("summary_header"),
        )

        inline_enabled = not settings.config.get("disable_inline", False)
        feedback = await self.feedback_source.get_review(
            numbered_diff, annotations, self.instructions, inline_enabled
        )

        deletes, minimizes = self._collect_requests(feedback, annotations)
        plan = reconcile(
            diff_index,
            annotations,
            feedback.findings,
            explicit_deletes=deletes,
            explicit_minimizes=minimizes,
            min_severity=get_min_severity(),
            summary=feedback.summary,
            minimize_outdated=settings.config.get("minimize_outdated", False),
            inline_enabled=inline_enabled,
        )

        if not publish:
            self.logger.info(f"Publishing disabled, computed {plan}")
            return ReviewRunReport.from_results(plan, ExecutionReport())

        execution = await ActionExecutor(self.git_provider, annotations).execute(plan)
        report = ReviewRunReport.from_results(plan, execution)
        self._log_report(report)
        return report

    def _collect_requests(self, feedback: ReviewFeedback, annotations: AnnotationSet) -> tuple[list[int], list[int]]:
        """
        Combine the model's delete/minimize requests with summary cleanup.

        Previous summaries are retired only when a new summary will be posted,
        keeping at most one live summary on the PR.
        """
        deletes = list(feedback.delete_ids)
        minimizes = list(feedback.minimize_ids)

        mode = str(get_settings().config.get("summary_cleanup", "delete")).lower()
        if mode not in SUMMARY_CLEANUP_MODES:
            self.logger.warning(f"Unknown summary_cleanup mode '{mode}', keeping previous summaries")
            mode = "keep"

        if feedback.summary.strip() and mode != "keep":
            previous = [a.id for a in annotations.summaries() if not a.is_minimized]
            if previous:
                self.logger.info(f"Retiring {len(previous)} previous summary comment(s) ({mode})")
            (deletes if mode == "delete" else minimizes).extend(previous)
        return deletes, minimizes

    async def _acknowledge_command(self):
        message = get_settings().config.get("review_started_message", "")
        if not message:
            return
        await self.git_provider.publish_comment(message)

    def _log_report(self, report: ReviewRunReport):
        self.logger.info("Review completed", artifact=report.to_outputs())
        self.logger.info(f"Inline comments posted: {report.comments_posted}")
        self.logger.info(f"Duplicate comments skipped: {report.duplicates_skipped}")
        self.logger.info(f"Comments minimized: {report.minimized}")
        self.logger.info(f"Comments deleted: {report.deleted}")
        if report.failed_actions:
            self.logger.warning(f"{report.failed_actions} action(s) failed")
        distribution = ", ".join(f"{s.value}={report.severity_distribution.get(s.value, 0)}" for s in Severity)
        self.logger.info(f"Severity distribution: {distribution}")
