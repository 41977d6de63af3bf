# AGPL-3.0 License

"""
Shared fixtures for PR-Annotator unit tests.
"""

import json
from typing import Optional

import pytest

from pr_annotator.algo.ai_handlers.base_ai_handler import BaseAiHandler, ToolCall
from pr_annotator.config_loader import get_settings
from pr_annotator.errors import GitProviderError
from pr_annotator.git_providers.git_provider import (
    GitProvider,
    InlineComment,
    PlatformComment,
    ThreadComment,
)

BOT = "github-actions[bot]"

# src/app.py: new lines 10-14, 11 and 13 added; src/util.py: new lines 1-3 all added
SAMPLE_DIFF = """diff --git a/src/app.py b/src/app.py
index 83db48f..bf269f4 100644
--- a/src/app.py
+++ b/src/app.py
@@ -10,4 +10,5 @@ def main():
 import os
+import sys

-print("old")
+print("new")
 return 0
diff --git a/src/util.py b/src/util.py
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/src/util.py
@@ -0,0 +1,3 @@
+def helper():
+    return 1
+
"""

LOCK_DIFF = """diff --git a/package-lock.json b/package-lock.json
index 1111111..2222222 100644
--- a/package-lock.json
+++ b/package-lock.json
@@ -1,2 +1,2 @@
 {
-  "version": "1.0.0"
+  "version": "1.0.1"
"""


class FakeGitProvider(GitProvider):
    """In-memory provider recording every mutation."""

    def __init__(self, diff: str = SAMPLE_DIFF, comments: Optional[list[PlatformComment]] = None):
        self.diff = diff
        self.comments = list(comments or [])
        self.bot_identity = BOT
        self.published: list[str] = []
        self.reviews: list[list[InlineComment]] = []
        self.single_comments: list[InlineComment] = []
        self.deleted_issue: list[int] = []
        self.deleted_review: list[int] = []
        self.minimized: list[tuple[str, str]] = []
        self.replies: list[tuple[int, str]] = []
        self.thread: list[ThreadComment] = []
        self.fail_review = False
        self.fail_thread = False
        self.fail_delete_ids: set[int] = set()
        self.closed = False
        self._next_id = 9000

    async def get_pr_diff(self) -> str:
        return self.diff

    async def get_pr_head_sha(self) -> str:
        return "abc123"

    async def list_comments(self) -> list[PlatformComment]:
        return list(self.comments)

    async def get_bot_identity(self) -> str:
        return self.bot_identity

    async def publish_comment(self, body: str) -> int:
        self.published.append(body)
        self._next_id += 1
        return self._next_id

    async def create_review(self, commit_id: str, comments: list[InlineComment]) -> None:
        if self.fail_review:
            raise GitProviderError("Unprocessable Entity", status_code=422)
        self.reviews.append(list(comments))

    async def create_review_comment(self, commit_id: str, comment: InlineComment) -> int:
        self.single_comments.append(comment)
        self._next_id += 1
        return self._next_id

    async def delete_issue_comment(self, comment_id: int) -> None:
        if comment_id in self.fail_delete_ids:
            raise GitProviderError("Not Found", status_code=404)
        self.deleted_issue.append(comment_id)

    async def delete_review_comment(self, comment_id: int) -> None:
        if comment_id in self.fail_delete_ids:
            raise GitProviderError("Not Found", status_code=404)
        self.deleted_review.append(comment_id)

    async def minimize_comment(self, node_id: str, classifier: str = "OUTDATED") -> None:
        self.minimized.append((node_id, classifier))

    async def get_review_comment(self, comment_id: int) -> PlatformComment:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        raise GitProviderError(f"Comment {comment_id} not found", status_code=404)

    async def get_comment_thread(self, comment_id: int, bot_identity: str) -> list[ThreadComment]:
        if self.fail_thread:
            raise GitProviderError("Server Error", status_code=500)
        return list(self.thread)

    async def create_reply(self, comment_id: int, body: str) -> None:
        self.replies.append((comment_id, body))

    async def close(self) -> None:
        self.closed = True


class FakeAIHandler(BaseAiHandler):
    """Returns canned completions and records the requests."""

    def __init__(self, tool_calls: Optional[list[ToolCall]] = None, content: str = "", error: Exception = None):
        self.tool_calls = tool_calls or []
        self.content = content
        self.error = error
        self.requests: list[dict] = []

    async def chat_completion(self, model, system, user, temperature=0.2, tools=None, messages=None):
        self.requests.append({
            "model": model,
            "system": system,
            "user": user,
            "tools": tools,
            "messages": messages,
        })
        if self.error is not None:
            raise self.error
        return self.content, list(self.tool_calls), "stop"


def submit_review_call(summary: str = "Looks fine overall.", comments: Optional[list[dict]] = None) -> ToolCall:
    payload = {"summary": summary}
    if comments is not None:
        payload["comments"] = comments
    return ToolCall(name="submit_review", arguments=json.dumps(payload))


def review_comment(comment_id: int, path: str, line: int, body: str = "🔴 **High**\n\nBug", **kwargs) -> PlatformComment:
    kwargs.setdefault("author", BOT)
    kwargs.setdefault("node_id", f"PRRC_{comment_id}")
    return PlatformComment(id=comment_id, body=body, comment_type="review", path=path, line=line, **kwargs)


def issue_comment(comment_id: int, body: str, **kwargs) -> PlatformComment:
    kwargs.setdefault("author", BOT)
    kwargs.setdefault("node_id", f"IC_{comment_id}")
    return PlatformComment(id=comment_id, body=body, comment_type="issue", **kwargs)


@pytest.fixture
def fake_provider():
    return FakeGitProvider()


@pytest.fixture
def override_settings():
    """
    Temporarily set scalar settings, e.g. ``override_settings("config.min_severity", "high")``.
    """
    settings = get_settings()
    saved = []

    def _set(key: str, value):
        saved.append((key, settings.get(key)))
        settings.set(key, value)

    yield _set

    for key, value in reversed(saved):
        settings.set(key, value)
