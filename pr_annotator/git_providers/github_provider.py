# AGPL-3.0 License

"""
GitHub REST v3 and GraphQL provider.
"""

import os
import re
from datetime import datetime
from typing import Any, Optional

import httpx

from pr_annotator.config_loader import get_settings
from pr_annotator.errors import ConfigurationError, GitProviderError
from pr_annotator.git_providers.git_provider import (
    GitProvider,
    InlineComment,
    PlatformComment,
    ThreadComment,
)
from pr_annotator.log import get_logger

RE_PR_URL = re.compile(r"^https?://[^/]+/(?:repos/)?([^/]+)/([^/]+)/pulls?/(\d+)")

MINIMIZE_MUTATION = """
mutation MinimizeComment($id: ID!, $classifier: ReportedContentClassifiers!) {
  minimizeComment(input: {subjectId: $id, classifier: $classifier}) {
    minimizedComment {
      isMinimized
    }
  }
}
"""

MINIMIZED_STATE_QUERY = """
query MinimizedState($ids: [ID!]!) {
  nodes(ids: $ids) {
    ... on IssueComment { id isMinimized }
    ... on PullRequestReviewComment { id isMinimized }
  }
}
"""


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_pr_url(pr_url: str) -> tuple[str, int]:
    """
    Split a pull request URL into ("owner/repo", number).

    Accepts both web URLs (``https://github.com/o/r/pull/1``) and API URLs
    (``https://api.github.com/repos/o/r/pulls/1``).
    """
    match = RE_PR_URL.match(pr_url or "")
    if not match:
        raise ConfigurationError(f"Invalid GitHub pull request URL: {pr_url}")
    owner, repo, number = match.groups()
    return f"{owner}/{repo}", int(number)


class GithubProvider(GitProvider):
    """
    GitHub access for a single pull request, over ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        pr_url: str,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            pr_url: Pull request URL
            token: API token; defaults to ``github.user_token`` then ``GITHUB_TOKEN``
            client: Preconfigured HTTP client
        """
        settings = get_settings()
        self.repo, self.pr_number = parse_pr_url(pr_url)
        self.base_url = settings.github.get("base_url", "https://api.github.com").rstrip("/")
        self.graphql_url = settings.github.get("graphql_url", f"{self.base_url}/graphql")
        self.page_size = int(settings.github.get("page_size", 100))
        self.logger = get_logger()

        token = token or settings.github.get("user_token") or os.environ.get("GITHUB_TOKEN")
        if not token:
            raise ConfigurationError("No GitHub token configured (github.user_token or GITHUB_TOKEN)")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._client = client or httpx.AsyncClient(timeout=settings.github.get("request_timeout", 30))
        self._bot_identity: Optional[str] = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        accept: Optional[str] = None,
    ) -> httpx.Response:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept
        try:
            response = await self._client.request(method, url, headers=headers, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitProviderError(
                f"GitHub {method} {path} failed with {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise GitProviderError(f"GitHub {method} {path} failed: {e}") from e
        return response

    async def _paginate(self, path: str) -> list[dict]:
        items: list[dict] = []
        page = 1
        while True:
            response = await self._request("GET", path, params={"per_page": self.page_size, "page": page})
            data = response.json()
            items.extend(data)
            if len(data) < self.page_size:
                break
            page += 1
        return items

    async def _graphql(self, query: str, variables: dict) -> dict:
        response = await self._request("POST", self.graphql_url, json={"query": query, "variables": variables})
        payload = response.json()
        if payload.get("errors"):
            messages = "; ".join(error.get("message", "") for error in payload["errors"])
            raise GitProviderError(f"GitHub GraphQL error: {messages}")
        return payload.get("data") or {}

    async def get_pr_diff(self) -> str:
        response = await self._request(
            "GET",
            f"/repos/{self.repo}/pulls/{self.pr_number}",
            accept="application/vnd.github.v3.diff",
        )
        return response.text

    async def get_pr_head_sha(self) -> str:
        response = await self._request("GET", f"/repos/{self.repo}/pulls/{self.pr_number}")
        return response.json()["head"]["sha"]

    async def get_bot_identity(self) -> str:
        if self._bot_identity is None:
            configured = get_settings().github.get("bot_login", "")
            if configured:
                self._bot_identity = configured
            else:
                response = await self._request("GET", "/user")
                self._bot_identity = response.json()["login"]
        return self._bot_identity

    async def list_comments(self) -> list[PlatformComment]:
        issue_comments = await self._paginate(f"/repos/{self.repo}/issues/{self.pr_number}/comments")
        review_comments = await self._paginate(f"/repos/{self.repo}/pulls/{self.pr_number}/comments")

        comments = [self._issue_comment(c) for c in issue_comments]
        comments.extend(self._review_comment(c) for c in review_comments)

        minimized = await self._fetch_minimized_state([c.node_id for c in comments if c.node_id])
        for comment in comments:
            comment.is_minimized = minimized.get(comment.node_id, False)

        self.logger.debug(
            f"Listed {len(issue_comments)} issue and {len(review_comments)} review comments on PR #{self.pr_number}"
        )
        return comments

    def _issue_comment(self, data: dict[str, Any]) -> PlatformComment:
        return PlatformComment(
            id=data["id"],
            author=(data.get("user") or {}).get("login", ""),
            body=data.get("body") or "",
            comment_type="issue",
            node_id=data.get("node_id"),
            created_at=_parse_timestamp(data.get("created_at")),
        )

    def _review_comment(self, data: dict[str, Any]) -> PlatformComment:
        line = data.get("line")
        return PlatformComment(
            id=data["id"],
            author=(data.get("user") or {}).get("login", ""),
            body=data.get("body") or "",
            comment_type="review",
            path=data.get("path"),
            line=line if line is not None else data.get("original_line"),
            position_valid=data.get("position") is not None and line is not None,
            node_id=data.get("node_id"),
            created_at=_parse_timestamp(data.get("created_at")),
            in_reply_to_id=data.get("in_reply_to_id"),
        )

    async def _fetch_minimized_state(self, node_ids: list[str]) -> dict[str, bool]:
        """
        Look up ``isMinimized`` for each node; REST listings do not expose it.

        Failures degrade to "not minimized" so a GraphQL outage does not
        block the review.
        """
        states: dict[str, bool] = {}
        for start in range(0, len(node_ids), 100):
            batch = node_ids[start:start + 100]
            try:
                data = await self._graphql(MINIMIZED_STATE_QUERY, {"ids": batch})
            except GitProviderError as e:
                self.logger.warning(f"Could not fetch minimized state of {len(batch)} comment(s): {e}")
                continue
            for node in data.get("nodes") or []:
                if node and node.get("id"):
                    states[node["id"]] = bool(node.get("isMinimized"))
        return states

    async def publish_comment(self, body: str) -> int:
        response = await self._request(
            "POST", f"/repos/{self.repo}/issues/{self.pr_number}/comments", json={"body": body}
        )
        return response.json()["id"]

    async def create_review(self, commit_id: str, comments: list[InlineComment]) -> None:
        await self._request(
            "POST",
            f"/repos/{self.repo}/pulls/{self.pr_number}/reviews",
            json={
                "commit_id": commit_id,
                "event": "COMMENT",
                "comments": [
                    {"path": c.path, "line": c.line, "side": "RIGHT", "body": c.body} for c in comments
                ],
            },
        )

    async def create_review_comment(self, commit_id: str, comment: InlineComment) -> int:
        response = await self._request(
            "POST",
            f"/repos/{self.repo}/pulls/{self.pr_number}/comments",
            json={
                "commit_id": commit_id,
                "path": comment.path,
                "line": comment.line,
                "side": "RIGHT",
                "body": comment.body,
            },
        )
        return response.json()["id"]

    async def delete_issue_comment(self, comment_id: int) -> None:
        await self._request("DELETE", f"/repos/{self.repo}/issues/comments/{comment_id}")

    async def delete_review_comment(self, comment_id: int) -> None:
        await self._request("DELETE", f"/repos/{self.repo}/pulls/comments/{comment_id}")

    async def minimize_comment(self, node_id: str, classifier: str = "OUTDATED") -> None:
        await self._graphql(MINIMIZE_MUTATION, {"id": node_id, "classifier": classifier})

    async def get_review_comment(self, comment_id: int) -> PlatformComment:
        response = await self._request("GET", f"/repos/{self.repo}/pulls/comments/{comment_id}")
        return self._review_comment(response.json())

    async def get_comment_thread(self, comment_id: int, bot_identity: str) -> list[ThreadComment]:
        target = await self.get_review_comment(comment_id)
        all_comments = await self._paginate(f"/repos/{self.repo}/pulls/{self.pr_number}/comments")

        root_id = target.in_reply_to_id or target.id
        thread = [
            c for c in all_comments
            if c["id"] == root_id
            or c.get("in_reply_to_id") == root_id
            or (c.get("path") == target.path and target.line is not None
                and target.line in (c.get("line"), c.get("original_line")))
        ]
        thread.sort(key=lambda c: c.get("created_at") or "")

        bot_login = (bot_identity or "").lower()
        return [
            ThreadComment(
                author=(c.get("user") or {}).get("login", "unknown"),
                body=c.get("body") or "",
                is_bot=(c.get("user") or {}).get("login", "").lower() == bot_login,
            )
            for c in thread
        ]

    async def create_reply(self, comment_id: int, body: str) -> None:
        await self._request(
            "POST",
            f"/repos/{self.repo}/pulls/{self.pr_number}/comments/{comment_id}/replies",
            json={"body": body},
        )

    async def close(self) -> None:
        await self._client.aclose()
