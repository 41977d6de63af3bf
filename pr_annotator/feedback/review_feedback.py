# AGPL-3.0 License

"""
AI feedback source.

Asks the language model for a review of the line-numbered diff through tool
calls and turns the calls into a ReviewFeedback batch. Model output is
untrusted: malformed tool arguments are skipped, and the reconciliation
engine validates every finding again.
"""

import json
from dataclasses import dataclass, field
from functools import partial
from typing import Optional

from jinja2 import Environment, StrictUndefined

from pr_annotator.algo.ai_handlers.base_ai_handler import BaseAiHandler, ToolCall
from pr_annotator.algo.ai_handlers.litellm_ai_handler import LiteLLMAIHandler
from pr_annotator.algo.utils import coerce_positive_int
from pr_annotator.config_loader import get_settings
from pr_annotator.errors import FeedbackUnavailableError
from pr_annotator.git_providers.git_provider import ThreadComment
from pr_annotator.log import get_logger
from pr_annotator.reconcile.annotation import AnnotationSet
from pr_annotator.reconcile.proposed import ProposedFinding

SUBMIT_REVIEW = "submit_review"
DELETE_COMMENT = "delete_comment"
MINIMIZE_COMMENT = "minimize_comment"


@dataclass
class ReviewFeedback:
    """
    One batch of feedback for a pull request.

    Attributes:
        summary: Short overview of the PR
        findings: Proposed inline comments
        delete_ids: Annotation ids the model wants deleted
        minimize_ids: Annotation ids the model wants minimized
    """
    summary: str = ""
    findings: list[ProposedFinding] = field(default_factory=list)
    delete_ids: list[int] = field(default_factory=list)
    minimize_ids: list[int] = field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.summary.strip() or self.findings or self.delete_ids or self.minimize_ids)


def build_review_tools(inline_enabled: bool = True) -> list[dict]:
    """Tool definitions offered to the model; inline comments are omitted when disabled."""
    review_properties = {
        "summary": {
            "type": "string",
            "description": "Brief markdown summary of what this PR does and overall assessment "
                           "(2-4 sentences). DO NOT include detailed issues here.",
        },
    }
    required = ["summary"]
    if inline_enabled:
        review_properties["comments"] = {
            "type": "array",
            "description": "List of inline comments using GitHub Alert syntax",
            "items": {
                "type": "object",
                "properties": {
                    "file": {"type": "string", "description": "The file path"},
                    "line": {
                        "type": "number",
                        "description": "The line number in the new file (must be a line starting with +)",
                    },
                    "body": {
                        "type": "string",
                        "description": "The comment text starting with GitHub Alert syntax",
                    },
                    "severity": {
                        "type": "string",
                        "enum": ["low", "medium", "high", "critical"],
                        "description": "'critical' for CAUTION, 'high' for WARNING, "
                                       "'medium' for IMPORTANT, 'low' for TIP/NOTE",
                    },
                },
                "required": ["file", "line", "body", "severity"],
                "additionalProperties": False,
            },
        }
        required.append("comments")

    def comment_tool(name: str, description: str) -> dict:
        return {
            "type": "function",
            "function": {
                "name": name,
                "description": description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "comment_id": {"type": "integer", "description": "The ID of the comment"},
                    },
                    "required": ["comment_id"],
                    "additionalProperties": False,
                },
            },
        }

    return [
        comment_tool(DELETE_COMMENT, "Delete one of your existing comments that was never valid."),
        comment_tool(MINIMIZE_COMMENT, "Collapse one of your existing comments that is resolved or superseded."),
        {
            "type": "function",
            "function": {
                "name": SUBMIT_REVIEW,
                "description": "Submit the code review with a summary and optional inline comments.",
                "parameters": {
                    "type": "object",
                    "properties": review_properties,
                    "required": required,
                    "additionalProperties": False,
                },
            },
        },
    ]


def parse_tool_calls(tool_calls: list[ToolCall]) -> ReviewFeedback:
    """
    Collect tool calls into a ReviewFeedback.

    Calls with unparsable arguments or unknown names are skipped, and so are
    comment entries that are not objects.
    """
    logger = get_logger()
    feedback = ReviewFeedback()
    for call in tool_calls:
        try:
            args = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping {call.name} call with malformed arguments: {e}")
            continue
        if not isinstance(args, dict):
            logger.warning(f"Skipping {call.name} call whose arguments are not an object")
            continue

        if call.name == SUBMIT_REVIEW:
            if isinstance(args.get("summary"), str):
                feedback.summary = args["summary"]
            comments = args.get("comments")
            for comment in comments if isinstance(comments, list) else []:
                if isinstance(comment, dict):
                    feedback.findings.append(ProposedFinding.from_dict(comment))
        elif call.name in (DELETE_COMMENT, MINIMIZE_COMMENT):
            comment_id = coerce_positive_int(args.get("comment_id"))
            if comment_id is None:
                logger.warning(f"Skipping {call.name} call without a valid comment_id")
                continue
            target = feedback.delete_ids if call.name == DELETE_COMMENT else feedback.minimize_ids
            target.append(comment_id)
        else:
            logger.warning(f"Ignoring unknown tool call: {call.name}")
    return feedback


class AIFeedbackSource:
    """
    Produces review feedback and thread replies with a language model.
    """

    def __init__(self, ai_handler: partial[BaseAiHandler] = LiteLLMAIHandler):
        """
        Args:
            ai_handler: Factory for the AI handler used for completions
        """
        self.ai_handler = ai_handler()
        self.logger = get_logger()
        self._env = Environment(undefined=StrictUndefined)

    def _render(self, template: str, **variables) -> str:
        return self._env.from_string(template).render(**variables)

    async def get_review(
        self,
        numbered_diff: str,
        annotations: AnnotationSet,
        instructions: Optional[str] = None,
        inline_enabled: bool = True,
    ) -> ReviewFeedback:
        """
        Request a review of the diff, given the bot's existing annotations.

        Raises:
            FeedbackUnavailableError: The model call failed or produced no usable content
        """
        settings = get_settings()
        existing = [a.to_prompt_dict() for a in annotations]
        previous_findings = [
            {"path": a.file, "line": a.line, "body": a.body}
            for a in annotations.active_findings() if a.file
        ]
        variables = {
            "numbered_diff": numbered_diff,
            "existing_comments": json.dumps(existing, indent=2, ensure_ascii=False),
            "previous_findings": previous_findings,
            "instructions": instructions,
            "inline_enabled": inline_enabled,
        }
        system_prompt = self._render(settings.review_prompts.system, **variables)
        user_prompt = self._render(settings.review_prompts.user, **variables)

        self.logger.info(f"Requesting review from AI, diff length {len(numbered_diff)}")
        try:
            _, tool_calls, _ = await self.ai_handler.chat_completion(
                model=settings.config.model,
                temperature=settings.config.get("temperature", 0.2),
                system=system_prompt,
                user=user_prompt,
                tools=build_review_tools(inline_enabled),
            )
        except Exception as e:
            raise FeedbackUnavailableError(f"AI review request failed: {e}") from e

        feedback = parse_tool_calls(tool_calls)
        if not feedback.has_content:
            raise FeedbackUnavailableError("AI did not submit a review summary, findings or comment actions")
        if not feedback.summary.strip():
            self.logger.warning("AI did not submit a review summary")

        self.logger.info(
            f"AI proposed {len(feedback.findings)} finding(s), "
            f"{len(feedback.delete_ids)} deletion(s), {len(feedback.minimize_ids)} minimization(s)"
        )
        return feedback

    async def generate_reply(
        self,
        numbered_diff: str,
        thread: list[ThreadComment],
        instructions: Optional[str] = None,
    ) -> str:
        """
        Write a reply continuing a review thread.

        Raises:
            FeedbackUnavailableError: The model call failed or returned an empty reply
        """
        settings = get_settings()
        variables = {"numbered_diff": numbered_diff, "instructions": instructions}
        messages = [
            {"role": "system", "content": self._render(settings.reply_prompts.system, **variables)},
            {"role": "user", "content": self._render(settings.reply_prompts.user, **variables)},
        ]
        for comment in thread:
            messages.append({
                "role": "assistant" if comment.is_bot else "user",
                "content": comment.body if comment.is_bot else f"{comment.author}: {comment.body}",
            })

        try:
            content, _, _ = await self.ai_handler.chat_completion(
                model=settings.config.model,
                temperature=settings.config.get("temperature", 0.2),
                system="",
                user="",
                messages=messages,
            )
        except Exception as e:
            raise FeedbackUnavailableError(f"AI reply request failed: {e}") from e

        if not content or not content.strip():
            raise FeedbackUnavailableError("Empty reply from AI")
        return content.strip()
