# AGPL-3.0 License

"""
Feedback source for PR-Annotator.

This module turns language-model tool calls into review feedback
(summary, proposed findings, comment management requests) and writes
replies to review threads.
"""

from pr_annotator.feedback.review_feedback import (
    AIFeedbackSource,
    ReviewFeedback,
    build_review_tools,
    parse_tool_calls,
)

__all__ = [
    "AIFeedbackSource",
    "ReviewFeedback",
    "build_review_tools",
    "parse_tool_calls",
]
