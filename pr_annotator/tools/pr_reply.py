# AGPL-3.0 License

"""
PR Reply tool - answers a comment posted in one of the bot's review threads.
"""

from functools import partial
from typing import Optional

from pr_annotator.algo.ai_handlers.base_ai_handler import BaseAiHandler
from pr_annotator.algo.ai_handlers.litellm_ai_handler import LiteLLMAIHandler
from pr_annotator.algo.diff_mapper import map_diff, render_numbered_diff
from pr_annotator.errors import GitProviderError
from pr_annotator.feedback.review_feedback import AIFeedbackSource
from pr_annotator.git_providers import get_git_provider
from pr_annotator.git_providers.git_provider import GitProvider, ThreadComment
from pr_annotator.log import get_logger


class PRReply:
    """
    PR Reply tool - continues a review thread with an AI response.
    """

    def __init__(
        self,
        pr_url: str,
        comment_id: int,
        args: list = None,
        ai_handler: partial[BaseAiHandler] = LiteLLMAIHandler,
        git_provider: Optional[GitProvider] = None,
        feedback_source: Optional[AIFeedbackSource] = None,
        comment_author: Optional[str] = None,
        comment_body: Optional[str] = None,
    ):
        """
        Args:
            pr_url: URL of the PR
            comment_id: Review comment that triggered the reply
            args: Extra instructions for the reply
            comment_author: Author of the triggering comment, when the event carries it
            comment_body: Body of the triggering comment, when the event carries it
        """
        self.pr_url = pr_url
        self.comment_id = comment_id
        self._owns_provider = git_provider is None
        self.git_provider = git_provider or get_git_provider()(pr_url)
        self.feedback_source = feedback_source or AIFeedbackSource(ai_handler)
        self.instructions = " ".join(args or []).strip() or None
        self.comment_author = comment_author
        self.comment_body = comment_body
        self.logger = get_logger()

    async def run(self) -> Optional[str]:
        """
        Generate and post the reply.

        Returns:
            The posted reply, or None when the comment was the bot's own
        """
        try:
            return await self._reply()
        finally:
            if self._owns_provider:
                await self.git_provider.close()

    async def _reply(self) -> Optional[str]:
        bot_identity = await self.git_provider.get_bot_identity()
        if self.comment_author and self.comment_author.lower() == bot_identity.lower():
            self.logger.info(f"Skipping reply to own comment #{self.comment_id}")
            return None

        numbered_diff = render_numbered_diff(map_diff(await self.git_provider.get_pr_diff()))

        try:
            thread = await self.git_provider.get_comment_thread(self.comment_id, bot_identity)
        except GitProviderError as e:
            self.logger.warning(f"Could not fetch thread for comment #{self.comment_id}, replying to it alone: {e}")
            thread = await self._single_comment_thread(bot_identity)

        if not thread:
            thread = await self._single_comment_thread(bot_identity)
        self.logger.info(f"Replying to comment #{self.comment_id} in a thread of {len(thread)} comment(s)")

        reply = await self.feedback_source.generate_reply(numbered_diff, thread, self.instructions)
        await self.git_provider.create_reply(self.comment_id, reply)
        self.logger.info(f"Posted reply to comment #{self.comment_id}")
        return reply

    async def _single_comment_thread(self, bot_identity: str) -> list[ThreadComment]:
        if self.comment_body is not None:
            author, body = self.comment_author or "user", self.comment_body
        else:
            comment = await self.git_provider.get_review_comment(self.comment_id)
            author, body = comment.author, comment.body
        return [ThreadComment(author=author, body=body, is_bot=author.lower() == bot_identity.lower())]
