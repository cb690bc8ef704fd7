"""
Base collaborator interfaces.

This module defines the abstract base classes for the external collaborators
the pipeline drives: the provisioning tool, the security scanner, the artifact
store and the pull request comment API.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.models import StepResult


@dataclass(frozen=True)
class Comment:
    """A pull request comment as returned by the comment API."""

    id: int
    body: str
    author_login: str = ""
    author_type: str = "User"


class ProvisioningTool(ABC):
    """Abstract provisioning tool (plan/apply lifecycle)."""

    @abstractmethod
    def fmt_check(self) -> StepResult:
        """Check formatting recursively; success means already formatted."""
        pass

    @abstractmethod
    def init(self) -> StepResult:
        """Initialize the working directory."""
        pass

    @abstractmethod
    def validate(self) -> StepResult:
        """Validate the declarations."""
        pass

    @abstractmethod
    def plan(self, out_file: str) -> StepResult:
        """Compute a plan and write it to out_file."""
        pass

    @abstractmethod
    def apply(self, plan_file: Optional[Path] = None) -> StepResult:
        """Apply plan_file verbatim, or plan and apply with auto-approve."""
        pass

    @abstractmethod
    def destroy(self) -> StepResult:
        """Destroy all managed resources with auto-approve."""
        pass

    @abstractmethod
    def format(self) -> StepResult:
        """Rewrite declaration files in canonical format."""
        pass

    @abstractmethod
    def version(self) -> str:
        """Return the tool version string."""
        pass


class Scanner(ABC):
    """Abstract static security scanner."""

    @abstractmethod
    def scan(self) -> StepResult:
        """Scan the working directory; output holds combined stdout and stderr."""
        pass


class ArtifactStore(ABC):
    """Abstract short-lived artifact store."""

    @abstractmethod
    def upload(
        self,
        name: str,
        path: Path,
        retention_days: int,
        run_id: str = "",
        commit: str = "",
        pr_number: Optional[int] = None,
    ) -> None:
        """Store the file at path under name, recording the change it was made for."""
        pass

    @abstractmethod
    def download(
        self,
        name: str,
        dest_dir: Path,
        commits: Optional[Sequence[str]] = None,
        pr_number: Optional[int] = None,
    ) -> Optional[Path]:
        """Fetch the artifact into dest_dir; None when there is none.

        When commits or pr_number is given, only an artifact planned for one
        of those commits or for that pull request is returned.
        """
        pass

    @abstractmethod
    def consume(self, name: str) -> None:
        """Mark the artifact as used so it is never applied twice."""
        pass

    @abstractmethod
    def purge_expired(self) -> int:
        """Remove expired and consumed artifacts; return how many were removed."""
        pass


class CommentAPI(ABC):
    """Abstract pull request comment API."""

    @abstractmethod
    def list_comments(self, issue_number: int) -> List[Comment]:
        """List comments on an issue in creation order."""
        pass

    @abstractmethod
    def create_comment(self, issue_number: int, body: str) -> Comment:
        """Create a new comment."""
        pass

    @abstractmethod
    def update_comment(self, comment_id: int, body: str) -> Comment:
        """Replace the body of an existing comment."""
        pass
