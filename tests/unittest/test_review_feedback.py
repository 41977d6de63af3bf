# AGPL-3.0 License

"""
Unit tests for the AI feedback source.
"""

import json

import pytest

from pr_annotator.algo.ai_handlers.base_ai_handler import ToolCall
from pr_annotator.errors import FeedbackUnavailableError
from pr_annotator.feedback.review_feedback import (
    AIFeedbackSource,
    build_review_tools,
    parse_tool_calls,
)
from pr_annotator.git_providers.git_provider import ThreadComment
from pr_annotator.reconcile.classifier import classify_comments

from .conftest import BOT, FakeAIHandler, review_comment, submit_review_call


def tool_names(tools):
    return [tool["function"]["name"] for tool in tools]


class TestBuildReviewTools:
    """Tests for build_review_tools."""

    def test_inline_enabled(self):
        """Test that the submit tool asks for inline comments when enabled."""
        tools = build_review_tools(True)
        submit = tools[-1]["function"]["parameters"]

        assert tool_names(tools) == ["delete_comment", "minimize_comment", "submit_review"]
        assert "comments" in submit["properties"]
        assert submit["required"] == ["summary", "comments"]

    def test_inline_disabled(self):
        """Test that the submit tool asks only for a summary when inline comments are disabled."""
        submit = build_review_tools(False)[-1]["function"]["parameters"]

        assert "comments" not in submit["properties"]
        assert submit["required"] == ["summary"]


class TestParseToolCalls:
    """Tests for parse_tool_calls."""

    def test_review_and_comment_actions(self):
        """Test parsing of review and comment management tool calls."""
        feedback = parse_tool_calls([
            submit_review_call("Adds a helper.", [
                {"file": "src/app.py", "line": 11, "body": "> [!TIP]\n> unused", "severity": "low"},
                {"file": "src/util.py", "line": "2", "body": "> [!WARNING]\n> bug", "severity": "high"},
            ]),
            ToolCall("delete_comment", json.dumps({"comment_id": 5})),
            ToolCall("minimize_comment", json.dumps({"comment_id": "6"})),
        ])

        assert feedback.summary == "Adds a helper."
        assert [(f.file, f.line, f.severity) for f in feedback.findings] == [
            ("src/app.py", 11, "low"),
            ("src/util.py", 2, "high"),
        ]
        assert feedback.delete_ids == [5]
        assert feedback.minimize_ids == [6]

    def test_malformed_calls_are_skipped(self):
        """Test that malformed and unknown tool calls are skipped."""
        feedback = parse_tool_calls([
            ToolCall("submit_review", "{not json"),
            ToolCall("submit_review", json.dumps(["a", "list"])),
            ToolCall("delete_comment", json.dumps({"comment_id": "abc"})),
            ToolCall("rm_rf", json.dumps({})),
        ])

        assert not feedback.has_content

    def test_untrusted_finding_fields(self):
        """Test that malformed finding fields are coerced instead of rejected."""
        feedback = parse_tool_calls([
            submit_review_call("ok", [
                {"file": 3, "line": "forty", "body": None, "severity": 7},
                "not an object",
            ]),
        ])

        assert len(feedback.findings) == 1
        finding = feedback.findings[0]
        assert (finding.file, finding.line, finding.body, finding.severity) == ("", None, "", "")


@pytest.mark.asyncio
class TestAIFeedbackSource:
    """Tests for AIFeedbackSource."""

    async def test_get_review(self):
        """Test that prompts include the diff, prior annotations and instructions."""
        handler = FakeAIHandler(tool_calls=[submit_review_call("Summary.", [])])
        source = AIFeedbackSource(lambda: handler)
        annotations = classify_comments([review_comment(1, "src/app.py", 11, body="🔴 **High**\n\nOld issue")], BOT)

        feedback = await source.get_review("   11: +import sys", annotations, instructions="Focus on security")

        assert feedback.summary == "Summary."
        request = handler.requests[0]
        assert "   11: +import sys" in request["user"]
        assert "Old issue" in request["user"]
        assert "Focus on security" in request["system"]
        assert tool_names(request["tools"])[-1] == "submit_review"

    async def test_no_content_is_an_error(self):
        """Test that a response without usable content is an error."""
        source = AIFeedbackSource(lambda: FakeAIHandler(tool_calls=[]))

        with pytest.raises(FeedbackUnavailableError):
            await source.get_review("diff", classify_comments([], BOT))

    async def test_handler_failure_is_wrapped(self):
        """Test that AI handler failures become feedback errors."""
        source = AIFeedbackSource(lambda: FakeAIHandler(error=TimeoutError("timed out")))

        with pytest.raises(FeedbackUnavailableError, match="timed out"):
            await source.get_review("diff", classify_comments([], BOT))

    async def test_generate_reply(self):
        """Test that the reply is generated from the thread and trimmed."""
        handler = FakeAIHandler(content="  Good point, fixed in the next push.  ")
        source = AIFeedbackSource(lambda: handler)
        thread = [
            ThreadComment(BOT, "🔴 **High**\n\nBug", is_bot=True),
            ThreadComment("alice", "Why is this a bug?"),
        ]

        reply = await source.generate_reply("diff", thread)

        assert reply == "Good point, fixed in the next push."
        messages = handler.requests[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[-1]["content"] == "alice: Why is this a bug?"

    async def test_empty_reply_is_an_error(self):
        """Test that an empty reply is an error."""
        source = AIFeedbackSource(lambda: FakeAIHandler(content="   "))

        with pytest.raises(FeedbackUnavailableError):
            await source.generate_reply("diff", [ThreadComment("alice", "?")])
