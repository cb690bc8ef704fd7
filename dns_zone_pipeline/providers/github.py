"""
GitHub pull request comment API and step summary output.

Uses the REST issues endpoints: comments on a pull request are issue comments.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import requests

from .base_provider import Comment, CommentAPI
from ..core.errors import CommentAPIError

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitHubCommentClient(CommentAPI):
    """Issue comment client for one repository."""

    def __init__(
        self,
        token: str,
        repository: str,
        api_url: str = "https://api.github.com",
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise CommentAPIError(method, url, None, str(e)) from e
        if response.status_code >= 400:
            raise CommentAPIError(method, url, response.status_code, response.text)
        return response

    @staticmethod
    def _to_comment(data: Dict) -> Comment:
        user = data.get("user") or {}
        return Comment(
            id=data["id"],
            body=data.get("body") or "",
            author_login=user.get("login", ""),
            author_type=user.get("type", "User"),
        )

    def list_comments(self, issue_number: int) -> List[Comment]:
        url = f"{self.api_url}/repos/{self.repository}/issues/{issue_number}/comments"
        params = {"per_page": PER_PAGE}
        comments = []
        while url:
            response = self._request("GET", url, params=params)
            comments.extend(self._to_comment(item) for item in response.json())
            url = response.links.get("next", {}).get("url")
            params = None
        logger.debug(f"Listed {len(comments)} comments on #{issue_number}")
        return comments

    def create_comment(self, issue_number: int, body: str) -> Comment:
        url = f"{self.api_url}/repos/{self.repository}/issues/{issue_number}/comments"
        response = self._request("POST", url, json={"body": body})
        return self._to_comment(response.json())

    def update_comment(self, comment_id: int, body: str) -> Comment:
        url = f"{self.api_url}/repos/{self.repository}/issues/comments/{comment_id}"
        response = self._request("PATCH", url, json={"body": body})
        return self._to_comment(response.json())


def step_summary_path(configured: str = "") -> Optional[Path]:
    """The file step summaries are appended to, if any."""
    path = configured or os.environ.get("GITHUB_STEP_SUMMARY", "")
    return Path(path) if path else None


def write_step_summary(markdown: str, configured: str = "") -> Optional[Path]:
    """Append markdown to the step summary file. Append-only, never rewritten."""
    path = step_summary_path(configured)
    if path is None:
        logger.info("No step summary file configured; summary logged only")
        logger.info(markdown)
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(markdown)
    return path
