# AGPL-3.0 License

"""
Action plan execution against the hosting platform.
"""

import asyncio

from pr_annotator.algo.severity import format_finding_body
from pr_annotator.config_loader import get_settings
from pr_annotator.executor.action_result import ActionKind, ActionResult, ExecutionReport
from pr_annotator.git_providers.git_provider import GitProvider, InlineComment
from pr_annotator.log import get_logger
from pr_annotator.reconcile.action_plan import ActionPlan
from pr_annotator.reconcile.annotation import AnnotationScope, AnnotationSet
from pr_annotator.reconcile.proposed import ProposedFinding


class ActionExecutor:
    """
    Applies an ActionPlan through a git provider.

    Minimize and delete actions run first (in parallel unless disabled),
    then the summary and the inline findings are posted. Every action is
    attempted independently; failures end up in the ExecutionReport and
    already applied actions are never rolled back.
    """

    def __init__(self, git_provider: GitProvider, annotations: AnnotationSet):
        """
        Args:
            git_provider: Provider scoped to the pull request
            annotations: The bot's classified annotations; only their ids can
                be minimized or deleted
        """
        self.git_provider = git_provider
        self.annotations = annotations
        self.logger = get_logger()

    async def execute(self, plan: ActionPlan) -> ExecutionReport:
        """
        Apply every action of the plan.

        Args:
            plan: Plan computed by the reconciliation engine

        Returns:
            Per-action results
        """
        report = ExecutionReport()

        removals = [(ActionKind.MINIMIZE, cid) for cid in sorted(plan.to_minimize)]
        removals += [(ActionKind.DELETE, cid) for cid in sorted(plan.to_delete)]
        if removals:
            parallel_execution = get_settings().get("executor", {}).get("parallel_execution", True)
            if parallel_execution:
                report.extend(await self._run_parallel(removals))
            else:
                report.extend(await self._run_sequential(removals))

        if plan.summary:
            report.add(await self._publish_summary(plan.summary))

        if plan.to_create:
            report.extend(await self._publish_findings(plan.to_create))

        for result in report.failed():
            self.logger.warning(f"Action failed: {result}")
        self.logger.info(
            f"Executed {len(report.results)} action(s), {len(report.failed())} failed"
        )
        return report

    async def _run_parallel(self, removals: list[tuple[ActionKind, int]]) -> list[ActionResult]:
        self.logger.info(f"Applying {len(removals)} minimize/delete action(s) in parallel")
        results = await asyncio.gather(
            *(self._apply_removal(kind, cid) for kind, cid in removals),
            return_exceptions=True,
        )
        collected = []
        for (kind, cid), result in zip(removals, results):
            if isinstance(result, Exception):
                collected.append(ActionResult(kind, f"comment #{cid}", False, str(result)))
            else:
                collected.append(result)
        return collected

    async def _run_sequential(self, removals: list[tuple[ActionKind, int]]) -> list[ActionResult]:
        self.logger.info(f"Applying {len(removals)} minimize/delete action(s) sequentially")
        return [await self._apply_removal(kind, cid) for kind, cid in removals]

    async def _apply_removal(self, kind: ActionKind, comment_id: int) -> ActionResult:
        target = f"comment #{comment_id}"
        annotation = self.annotations.get(comment_id)
        if annotation is None:
            return ActionResult(kind, target, False, "not a comment authored by this bot")

        try:
            if kind == ActionKind.DELETE:
                if annotation.scope == AnnotationScope.GENERAL:
                    await self.git_provider.delete_issue_comment(comment_id)
                else:
                    await self.git_provider.delete_review_comment(comment_id)
            else:
                if not annotation.node_id:
                    return ActionResult(kind, target, False, "no node id to minimize")
                classifier = get_settings().github.get("minimize_classifier", "OUTDATED")
                await self.git_provider.minimize_comment(annotation.node_id, classifier)
        except Exception as e:
            return ActionResult(kind, target, False, str(e))

        self.logger.debug(f"{kind.value} {target} ({annotation.scope.value})")
        return ActionResult(kind, target, True)

    async def _publish_summary(self, summary: str) -> ActionResult:
        header = get_settings().config.get("summary_header", "")
        body = f"{header}\n\n{summary}" if header else summary
        try:
            comment_id = await self.git_provider.publish_comment(body)
        except Exception as e:
            return ActionResult(ActionKind.CREATE_SUMMARY, "summary", False, str(e))
        self.logger.info("Posted summary as PR comment")
        return ActionResult(ActionKind.CREATE_SUMMARY, f"comment #{comment_id}", True)

    async def _publish_findings(self, findings: list[ProposedFinding]) -> list[ActionResult]:
        """
        Post all findings as one review, falling back to one comment at a time.
        """
        targets = [f"{f.file}:{f.line}" for f in findings]
        comments = [
            InlineComment(path=f.file, line=f.line, body=format_finding_body(f.body, f.severity))
            for f in findings
        ]

        try:
            commit_id = await self.git_provider.get_pr_head_sha()
        except Exception as e:
            return [ActionResult(ActionKind.CREATE_FINDING, t, False, f"no head commit: {e}") for t in targets]

        try:
            await self.git_provider.create_review(commit_id, comments)
            self.logger.info(f"Posted {len(comments)} inline review comment(s)")
            return [ActionResult(ActionKind.CREATE_FINDING, t, True) for t in targets]
        except Exception as e:
            self.logger.warning(f"Batch review failed, falling back to individual comments: {e}")

        results = []
        for target, comment in zip(targets, comments):
            results.append(await self._publish_single(commit_id, target, comment))
        return results

    async def _publish_single(self, commit_id: str, target: str, comment: InlineComment) -> ActionResult:
        try:
            await self.git_provider.create_review_comment(commit_id, comment)
        except Exception as e:
            return ActionResult(ActionKind.CREATE_FINDING, target, False, str(e))
        return ActionResult(ActionKind.CREATE_FINDING, target, True)

