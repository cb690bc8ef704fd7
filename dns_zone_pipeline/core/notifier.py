"""
Notifier - one status comment per pull request and report category.

Each report category has a marker string that is embedded in the comment
body. Upserting a report scans the pull request's comments for the first
automation-authored comment carrying that marker and updates it, or creates
a new comment when there is none. The (PR, category) -> comment id map is
derived from that scan on every call and never cached across runs.
"""

import logging
from typing import Dict, Optional, Tuple

from .context import RunContext
from .models import ChangeSet, Outcome, ScanReport
from ..providers.base_provider import Comment, CommentAPI

logger = logging.getLogger(__name__)

PLAN_CATEGORY = "plan"
SECURITY_CATEGORY = "security"

DEFAULT_MARKERS = {
    PLAN_CATEGORY: "Terraform Plan Results",
    SECURITY_CATEGORY: "Security Scan Results",
}

# GitHub rejects comment bodies above 65536 characters
MAX_DETAILS_LENGTH = 60000


class Notifier:
    """Idempotent per-category comment upsert."""

    def __init__(self, api: CommentAPI, markers: Optional[Dict[str, str]] = None, bot_login: str = ""):
        self.api = api
        self.markers = dict(markers or DEFAULT_MARKERS)
        self.bot_login = bot_login

    def _is_automation(self, comment: Comment) -> bool:
        if self.bot_login:
            return comment.author_login == self.bot_login
        return comment.author_type == "Bot"

    def comment_index(self, pr_number: int) -> Dict[Tuple[int, str], int]:
        """Map (PR, category) to the id of the comment currently holding that report."""
        index = {}
        for comment in self.api.list_comments(pr_number):
            if not self._is_automation(comment):
                continue
            for category, marker in self.markers.items():
                key = (pr_number, category)
                if key not in index and marker in comment.body:
                    index[key] = comment.id
        return index

    def upsert(self, pr_number: int, category: str, body: str) -> Comment:
        """Create or replace the comment for category on the pull request."""
        marker = self.markers.get(category)
        if marker is None:
            raise ValueError(f"Unknown report category '{category}'")
        if marker not in body:
            raise ValueError(f"Report body for '{category}' does not contain its marker '{marker}'")

        comment_id = self.comment_index(pr_number).get((pr_number, category))
        if comment_id is not None:
            logger.info(f"Updating {category} comment {comment_id} on #{pr_number}")
            return self.api.update_comment(comment_id, body)

        logger.info(f"Creating {category} comment on #{pr_number}")
        return self.api.create_comment(pr_number, body)


def _truncate(text: str) -> str:
    text = text.strip()
    if len(text) <= MAX_DETAILS_LENGTH:
        return text
    return text[:MAX_DETAILS_LENGTH] + "\n... (output truncated)"


def _footer(context: RunContext, working_dir: str) -> str:
    return (
        f"*Pusher: @{context.actor}, Action: `{context.event_name}`, "
        f"Working Directory: `{working_dir}`, Workflow: `{context.workflow}`*"
    )


def render_plan_report(
    marker: str,
    validate_outcomes: Dict[str, Outcome],
    plan_outcome: Outcome,
    change_set: Optional[ChangeSet],
    context: RunContext,
    working_dir: str,
) -> str:
    """Render the plan report comment body."""

    def outcome(name: str) -> str:
        return validate_outcomes.get(name, Outcome.SKIPPED).value

    plan_text = change_set.diff_text if change_set is not None else ""
    summary = f" ({change_set.summary_line})" if change_set is not None and plan_outcome == Outcome.SUCCESS else ""

    return "\n".join(
        [
            f"## {marker} 🚀",
            "",
            f"#### Terraform Format and Style 🖌 `{outcome('fmt')}`",
            f"#### Terraform Initialization ⚙️ `{outcome('init')}`",
            f"#### Terraform Validation 🤖 `{outcome('validate')}`",
            f"#### Terraform Plan 📖 `{plan_outcome.value}`{summary}",
            "",
            "<details><summary>Show Plan</summary>",
            "",
            "```terraform",
            _truncate(plan_text),
            "```",
            "",
            "</details>",
            "",
            _footer(context, working_dir),
        ]
    )


def render_security_report(
    marker: str, report: ScanReport, context: RunContext, working_dir: str
) -> str:
    """Render the security report comment body."""
    counts = f"Passed: {report.passed}, Failed: {report.failed}, Skipped: {report.skipped}"
    return "\n".join(
        [
            f"## {marker} 🔒",
            "",
            f"#### Checkov Security Scan 🛡️ `{report.outcome.value}`",
            "",
            counts,
            "",
            "<details><summary>Show Security Scan Details</summary>",
            "",
            "```",
            _truncate(report.output),
            "```",
            "",
            "</details>",
            "",
            _footer(context, working_dir),
        ]
    )
