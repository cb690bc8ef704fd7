"""
Plan Producer - runs init and plan, and hands the plan to the artifact store.

A failed plan is not an exception: its diagnostics travel in the ChangeSet so
the plan report can show them. A failed init is fatal.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple

from .context import RunContext
from .errors import InitError
from .models import ChangeSet, PlanOutcome, StepResult
from ..parsers.plan_output import PlanOutputParser
from ..providers.base_provider import ArtifactStore, ProvisioningTool

logger = logging.getLogger(__name__)


class PlanProducer:
    """Produces a ChangeSet for the current declarations."""

    def __init__(self, tool: ProvisioningTool, store: ArtifactStore, config: Dict):
        terraform = config.get("terraform", {})
        artifacts = config.get("artifacts", {})
        self.tool = tool
        self.store = store
        self.working_dir = Path(terraform.get("working_dir", "."))
        self.plan_file = terraform.get("plan_file", "tfplan")
        self.artifact_name = artifacts.get("name", "terraform-plan")
        self.retention_days = artifacts.get("retention_days", 1)

    def produce(self, context: RunContext) -> Tuple[ChangeSet, List[StepResult]]:
        """Run init then plan; upload the plan file, tagged with the change it describes, when the plan succeeded."""
        steps = []

        init = self.tool.init()
        steps.append(init)
        if not init.succeeded:
            raise InitError(["terraform", "init"], init.exit_code or 1, init.output)

        plan = self.tool.plan(self.plan_file)
        steps.append(plan)
        change_set = self._to_change_set(plan)
        logger.info(f"Plan outcome: {change_set.outcome.value} ({change_set.summary_line})")

        if change_set.outcome != PlanOutcome.FAILURE:
            purged = self.store.purge_expired()
            if purged:
                logger.info(f"Removed {purged} expired or consumed artifact(s)")
            self.store.upload(
                self.artifact_name,
                change_set.plan_file,
                self.retention_days,
                run_id=context.run_id,
                commit=context.plan_commit,
                pr_number=context.pr_number,
            )
        return change_set, steps

    def _to_change_set(self, plan: StepResult) -> ChangeSet:
        if not plan.succeeded:
            return ChangeSet(outcome=PlanOutcome.FAILURE, diff_text=plan.output)

        summary = PlanOutputParser(plan.output).parse()
        plan_path = self.working_dir / self.plan_file
        if summary is not None and summary.no_changes:
            return ChangeSet(outcome=PlanOutcome.NO_OP, diff_text=plan.output, plan_file=plan_path)

        return ChangeSet(
            outcome=PlanOutcome.SUCCESS,
            diff_text=plan.output,
            plan_file=plan_path,
            to_add=summary.to_add if summary else 0,
            to_change=summary.to_change if summary else 0,
            to_destroy=summary.to_destroy if summary else 0,
        )
