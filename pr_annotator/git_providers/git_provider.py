# AGPL-3.0 License

"""
Abstract hosting-platform interface.

Reads (diff, comment listing, identity) happen before reconciliation;
mutations (publish, delete, minimize) happen after it, from the action
executor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional


@dataclass
class PlatformComment:
    """
    A comment as listed by the platform, before classification.

    Attributes:
        id: Platform id, unique across both comment types of a PR
        author: Login of the comment author
        body: Markdown body
        comment_type: "issue" for general PR comments, "review" for line-anchored ones
        path: File of a review comment
        line: Current line of a review comment (original line when outdated)
        position_valid: False when the platform no longer resolves the comment's
            position against the current diff
        is_minimized: True when the comment has been collapsed
        node_id: Global id used by GraphQL mutations
    """
    id: int
    author: str
    body: str
    comment_type: Literal["issue", "review"] = "issue"
    path: Optional[str] = None
    line: Optional[int] = None
    position_valid: bool = True
    is_minimized: bool = False
    node_id: Optional[str] = None
    created_at: Optional[datetime] = None
    in_reply_to_id: Optional[int] = None


@dataclass
class ThreadComment:
    """One message of a review comment thread, oldest first."""
    author: str
    body: str
    is_bot: bool = False


@dataclass
class InlineComment:
    """A line-anchored comment ready to be posted."""
    path: str
    line: int
    body: str


class GitProvider(ABC):
    """
    Abstract base class for hosting-platform access scoped to one pull request.
    """

    @abstractmethod
    async def get_pr_diff(self) -> str:
        """Return the full unified diff of the pull request."""
        pass

    @abstractmethod
    async def get_pr_head_sha(self) -> str:
        pass

    @abstractmethod
    async def list_comments(self) -> list[PlatformComment]:
        """
        List all general and line-anchored comments on the pull request,
        from every author.
        """
        pass

    @abstractmethod
    async def get_bot_identity(self) -> str:
        """Return the login this process posts under."""
        pass

    @abstractmethod
    async def publish_comment(self, body: str) -> int:
        """Post a general comment and return its id."""
        pass

    @abstractmethod
    async def create_review(self, commit_id: str, comments: list[InlineComment]) -> None:
        """Post several inline comments as a single review."""
        pass

    @abstractmethod
    async def create_review_comment(self, commit_id: str, comment: InlineComment) -> int:
        pass

    @abstractmethod
    async def delete_issue_comment(self, comment_id: int) -> None:
        pass

    @abstractmethod
    async def delete_review_comment(self, comment_id: int) -> None:
        pass

    @abstractmethod
    async def minimize_comment(self, node_id: str, classifier: str = "OUTDATED") -> None:
        pass

    @abstractmethod
    async def get_review_comment(self, comment_id: int) -> PlatformComment:
        pass

    @abstractmethod
    async def get_comment_thread(self, comment_id: int, bot_identity: str) -> list[ThreadComment]:
        """
        Return the thread a review comment belongs to, oldest first.

        Args:
            comment_id: Any comment of the thread
            bot_identity: Login used to flag the bot's own messages
        """
        pass

    @abstractmethod
    async def create_reply(self, comment_id: int, body: str) -> None:
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
