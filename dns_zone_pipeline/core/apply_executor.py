"""
Apply Executor - applies the reviewed plan, or plans and applies in one step.

State machine:

    start -> choose-path -> applying -> done

choose-path takes exact-apply when the artifact store still holds the plan
produced for review of this very change, and auto-apply otherwise. A missing artifact is never an
error. Apply failures are terminal: no retry, no rollback. A deployment
summary is written whatever the outcome.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional

from .context import RunContext
from .errors import ApplyError, InitError, PipelineError
from .gate import ApprovalGate
from .models import (
    ApplyPath,
    AutoApply,
    DeploymentSummary,
    ExactApply,
    ManualAction,
    Outcome,
    StepResult,
)
from ..providers.base_provider import ArtifactStore, ProvisioningTool
from ..providers.github import write_step_summary

logger = logging.getLogger(__name__)


def should_apply(context: RunContext) -> bool:
    """Only main-line pushes apply automatically; anything else must be a manual apply."""
    return context.is_main_push or context.is_manual(ManualAction.APPLY)


def should_destroy(context: RunContext) -> bool:
    return context.is_manual(ManualAction.DESTROY)


class ApplyExecutor:
    """Runs the gated apply (or destroy) for one run."""

    def __init__(
        self,
        tool: ProvisioningTool,
        store: ArtifactStore,
        gate: ApprovalGate,
        config: Dict,
        summary_writer: Optional[Callable[[str], object]] = None,
    ):
        terraform = config.get("terraform", {})
        self.tool = tool
        self.store = store
        self.gate = gate
        self.working_dir = terraform.get("working_dir", ".")
        self.artifact_name = config.get("artifacts", {}).get("name", "terraform-plan")
        summary_file = config.get("summary", {}).get("file", "")
        self.summary_writer = summary_writer or (
            lambda markdown: write_step_summary(markdown, summary_file)
        )
        self.last_summary: Optional[DeploymentSummary] = None

    def choose_path(self, context: RunContext) -> ApplyPath:
        """
        Pick exact-apply when the plan reviewed for this change is available,
        auto-apply otherwise. The artifact only counts when it was planned for
        a commit this run deploys or for the pull request this push merged.
        """
        artifact = self.store.download(
            self.artifact_name,
            Path(self.working_dir),
            commits=context.deployable_commits,
            pr_number=context.merged_pr,
        )
        if artifact is not None:
            artifact = Path(artifact).resolve()
            logger.info(f"Plan artifact found at {artifact}; applying it verbatim")
            return ExactApply(artifact_path=artifact)

        logger.info("No plan artifact available; falling back to auto-approve apply")
        return AutoApply()

    def apply(self, context: RunContext, path: Optional[ApplyPath] = None) -> DeploymentSummary:
        """
        Apply changes for context.

        Args:
            context: The current run; must satisfy should_apply
            path: Inject a path directly; computed with choose_path when None

        Returns:
            The deployment summary that was written

        Raises:
            GateBlockedError: the environment was not approved
            InitError, ApplyError: the tool failed; the summary is still written
        """
        if not should_apply(context):
            raise PipelineError(
                f"Apply is not allowed for {context.event_name} on {context.ref}"
            )
        self.gate.require(context, "apply")

        path_name = path.name if path is not None else "unresolved"
        result: Optional[StepResult] = None
        try:
            self._init()
            if path is None:
                path = self.choose_path(context)
            path_name = path.name

            if isinstance(path, ExactApply):
                # consumed before applying so a failed apply never replays the same plan
                self.store.consume(self.artifact_name)
                result = self.tool.apply(path.artifact_path)
            else:
                result = self.tool.apply()

            if not result.succeeded:
                raise ApplyError(
                    ["terraform", "apply"], result.exit_code or 1, result.output
                )
        finally:
            self._emit_summary(context, result, path_name, "apply")

        logger.info(f"Apply completed via {path_name}")
        return self.last_summary

    def destroy(self, context: RunContext) -> DeploymentSummary:
        """Destroy all managed resources. Manual dispatch only, gated like apply."""
        if not should_destroy(context):
            raise PipelineError("Destroy requires a manual dispatch with action 'destroy'")
        self.gate.require(context, "destroy")

        result: Optional[StepResult] = None
        try:
            self._init()
            result = self.tool.destroy()
            if not result.succeeded:
                raise ApplyError(
                    ["terraform", "destroy"], result.exit_code or 1, result.output
                )
        finally:
            self._emit_summary(context, result, "destroy", "destroy")

        return self.last_summary

    def _init(self) -> None:
        init = self.tool.init()
        if not init.succeeded:
            raise InitError(["terraform", "init"], init.exit_code or 1, init.output)

    def _emit_summary(
        self, context: RunContext, result: Optional[StepResult], path_name: str, action: str
    ) -> None:
        outcome = result.outcome if result is not None else Outcome.FAILURE
        summary = DeploymentSummary(
            outcome=outcome,
            working_dir=self.working_dir,
            tool_version=self.tool.version(),
            actor=context.actor,
            commit=context.sha,
            apply_path=path_name,
            action=action,
            detail=result.output if result is not None and not result.succeeded else "",
        )
        self.last_summary = summary
        self.summary_writer(summary.to_markdown())
        logger.info(f"Deployment summary written: {action} {outcome.value}")
