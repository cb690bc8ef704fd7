"""
Data model for the zone pipeline.

Plain dataclasses describing what flows between jobs: plan change-sets,
apply paths, step and job results, and the deployment summary record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union


class TriggerKind(str, Enum):
    PULL_REQUEST = "pull_request"
    PUSH = "push"
    MANUAL_DISPATCH = "manual_dispatch"


class ManualAction(str, Enum):
    PLAN = "plan"
    APPLY = "apply"
    DESTROY = "destroy"


class Outcome(str, Enum):
    """Outcome of a single step or job, named after the CI step outcomes."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class PlanOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NO_OP = "no-op"


class GateState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


@dataclass(frozen=True)
class StepResult:
    """Result of one external command invocation."""

    name: str
    outcome: Outcome
    exit_code: Optional[int] = None
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == Outcome.SUCCESS


@dataclass(frozen=True)
class ChangeSet:
    """Output of a plan: outcome, diff text and the serialized plan handle."""

    outcome: PlanOutcome
    diff_text: str
    plan_file: Optional[Path] = None
    to_add: int = 0
    to_change: int = 0
    to_destroy: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def summary_line(self) -> str:
        if self.outcome == PlanOutcome.NO_OP:
            return "No changes."
        return (
            f"{self.to_add} to add, {self.to_change} to change, "
            f"{self.to_destroy} to destroy"
        )

    @property
    def step_outcome(self) -> Outcome:
        """No-op plans succeed as far as the pipeline is concerned."""
        if self.outcome == PlanOutcome.FAILURE:
            return Outcome.FAILURE
        return Outcome.SUCCESS


@dataclass(frozen=True)
class ExactApply:
    """Apply a stored plan verbatim."""

    artifact_path: Path

    @property
    def name(self) -> str:
        return "exact-apply"


@dataclass(frozen=True)
class AutoApply:
    """Recompute the plan and apply it in one step."""

    @property
    def name(self) -> str:
        return "auto-apply"


ApplyPath = Union[ExactApply, AutoApply]


@dataclass(frozen=True)
class ScanReport:
    """Security scan output. Informational only."""

    output: str
    outcome: Outcome
    exit_code: Optional[int] = None
    passed: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class DeploymentSummary:
    """Write-once record emitted when an apply or destroy finishes."""

    outcome: Outcome
    working_dir: str
    tool_version: str
    actor: str
    commit: str
    apply_path: str
    action: str = "apply"
    detail: str = ""

    def to_markdown(self) -> str:
        title = "Terraform Destroy Results" if self.action == "destroy" else "Terraform Apply Results"
        lines = [
            f"## {title} 🚀",
            "",
            f"### Status: {self.outcome.value}",
            "",
            f"**Working Directory:** `{self.working_dir}`",
            f"**Terraform Version:** `{self.tool_version}`",
            f"**Apply Path:** `{self.apply_path}`",
            f"**Triggered by:** @{self.actor}",
            f"**Commit:** {self.commit}",
        ]
        if self.detail:
            lines.extend(["", "```", self.detail.strip(), "```"])
        return "\n".join(lines) + "\n"


@dataclass
class JobResult:
    name: str
    outcome: Outcome
    steps: List[StepResult] = field(default_factory=list)
    outputs: Dict[str, object] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class PipelineResult:
    jobs: Dict[str, JobResult] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return any(job.outcome == Outcome.FAILURE for job in self.jobs.values())

    @property
    def status(self) -> Outcome:
        return Outcome.FAILURE if self.failed else Outcome.SUCCESS

    def outcome_of(self, job_name: str) -> Outcome:
        job = self.jobs.get(job_name)
        return job.outcome if job else Outcome.SKIPPED
