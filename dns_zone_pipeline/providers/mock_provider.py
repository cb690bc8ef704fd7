"""
Mock collaborators for testing and demonstration.

This module provides in-memory stand-ins for the provisioning tool, the
security scanner and the comment API so the pipeline can be exercised without
terraform, checkov or network access.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .base_provider import Comment, CommentAPI, ProvisioningTool, Scanner
from ..core.models import Outcome, StepResult

logger = logging.getLogger(__name__)

DEFAULT_PLAN_OUTPUT = (
    "Terraform will perform the following actions:\n\n"
    '  # cloudflare_record.www will be created\n'
    '  # cloudflare_record.api will be created\n\n'
    "Plan: 2 to add, 0 to change, 0 to destroy.\n"
)

DEFAULT_SCAN_OUTPUT = (
    "terraform scan results:\n\n"
    "Passed checks: 4, Failed checks: 0, Skipped checks: 1\n"
)


class MockTerraform(ProvisioningTool):
    """Mock provisioning tool that records every call."""

    def __init__(
        self,
        working_dir: str = ".",
        fail: Iterable[str] = (),
        outputs: Optional[Dict[str, str]] = None,
        plan_payload: bytes = b"mock-plan",
        tool_version: str = "1.12.2",
    ):
        self.working_dir = Path(working_dir)
        self.fail = set(fail)
        self.outputs = outputs or {}
        self.plan_payload = plan_payload
        self.tool_version = tool_version
        self.calls: List[str] = []
        self.applied_plans: List[bytes] = []
        logger.info("Mock provisioning tool initialized")

    def _result(self, name: str, default_output: str = "") -> StepResult:
        self.calls.append(name)
        if name in self.fail:
            output = self.outputs.get(name, f"Error: mock {name} failure")
            return StepResult(name=name, outcome=Outcome.FAILURE, exit_code=1, output=output)
        return StepResult(
            name=name,
            outcome=Outcome.SUCCESS,
            exit_code=0,
            output=self.outputs.get(name, default_output),
        )

    def fmt_check(self) -> StepResult:
        return self._result("fmt")

    def init(self) -> StepResult:
        return self._result("init", "Terraform has been successfully initialized!")

    def validate(self) -> StepResult:
        return self._result("validate", "Success! The configuration is valid.")

    def plan(self, out_file: str) -> StepResult:
        result = self._result("plan", DEFAULT_PLAN_OUTPUT)
        if result.succeeded:
            self.working_dir.mkdir(parents=True, exist_ok=True)
            (self.working_dir / out_file).write_bytes(self.plan_payload)
        return result

    def apply(self, plan_file: Optional[Path] = None) -> StepResult:
        if plan_file is None:
            # auto-approve computes its own plan before applying
            self.calls.append("plan(auto)")
            self.applied_plans.append(self.plan_payload)
        else:
            self.applied_plans.append(Path(plan_file).read_bytes())
        return self._result("apply", "Apply complete! Resources: 2 added, 0 changed, 0 destroyed.")

    def destroy(self) -> StepResult:
        return self._result("destroy", "Destroy complete! Resources: 2 destroyed.")

    def format(self) -> StepResult:
        self.fail.discard("fmt")
        return self._result("fmt-fix")

    def version(self) -> str:
        return self.tool_version


class MockScanner(Scanner):
    """Mock scanner returning canned output with a configurable exit code."""

    def __init__(self, output: str = DEFAULT_SCAN_OUTPUT, exit_code: int = 0):
        self.output = output
        self.exit_code = exit_code
        self.scans = 0

    def scan(self) -> StepResult:
        self.scans += 1
        outcome = Outcome.SUCCESS if self.exit_code == 0 else Outcome.FAILURE
        return StepResult(name="checkov", outcome=outcome, exit_code=self.exit_code, output=self.output)


class MockCommentAPI(CommentAPI):
    """In-memory comment API keyed by issue number."""

    def __init__(self, bot_login: str = "github-actions[bot]"):
        self.bot_login = bot_login
        self.comments: Dict[int, List[Comment]] = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.requests: List[str] = []

    def add_comment(self, issue_number: int, body: str, login: str, author_type: str = "User") -> Comment:
        """Seed a comment as if another account had posted it."""
        with self._lock:
            comment = Comment(id=self._next_id, body=body, author_login=login, author_type=author_type)
            self._next_id += 1
            self.comments.setdefault(issue_number, []).append(comment)
        return comment

    def list_comments(self, issue_number: int) -> List[Comment]:
        self.requests.append(f"list:{issue_number}")
        return list(self.comments.get(issue_number, []))

    def create_comment(self, issue_number: int, body: str) -> Comment:
        self.requests.append(f"create:{issue_number}")
        return self.add_comment(issue_number, body, self.bot_login, "Bot")

    def update_comment(self, comment_id: int, body: str) -> Comment:
        self.requests.append(f"update:{comment_id}")
        for issue_comments in self.comments.values():
            for i, existing in enumerate(issue_comments):
                if existing.id == comment_id:
                    updated = Comment(
                        id=existing.id,
                        body=body,
                        author_login=existing.author_login,
                        author_type=existing.author_type,
                    )
                    issue_comments[i] = updated
                    return updated

        raise ValueError(f"Comment {comment_id} not found for update")
