"""
Pipeline - the job DAG for one run.

    validate -> plan -----> plan-report
             -> security -> security-report
                         -> apply
             -> destroy

A job starts once every job it needs has finished. It runs only if those
jobs succeeded (or, for report jobs, at least ran) and its own condition holds
for the run context; otherwise it is skipped. Jobs without a dependency edge
between them run concurrently on a thread pool and never assume each other's
completion.
"""

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .apply_executor import ApplyExecutor, should_apply, should_destroy
from .concurrency import ConcurrencyRegistry
from .context import RunContext
from .errors import InitError, PipelineError
from .gate import ApprovalGate
from .models import (
    ChangeSet,
    JobResult,
    ManualAction,
    Outcome,
    PipelineResult,
    PlanOutcome,
    StepResult,
)
from .notifier import (
    PLAN_CATEGORY,
    SECURITY_CATEGORY,
    Notifier,
    render_plan_report,
    render_security_report,
)
from .plan_producer import PlanProducer
from .security_scanner import SecurityScanner
from ..providers.registry import Collaborators

logger = logging.getLogger(__name__)

JobRunner = Callable[[RunContext, Dict[str, JobResult]], JobResult]


@dataclass
class Job:
    name: str
    run: JobRunner
    needs: Tuple[str, ...] = ()
    condition: Callable[[RunContext], bool] = lambda context: True
    cancellable: bool = True
    # run even when a needed job failed, as long as it ran
    after_failure: bool = False


@dataclass
class _Schedule:
    pending: List[Job] = field(default_factory=list)
    running: Dict[Future, Job] = field(default_factory=dict)


class Pipeline:
    """Builds and runs the job DAG for a run context."""

    def __init__(
        self,
        config: Dict,
        collaborators: Collaborators,
        gate: Optional[ApprovalGate] = None,
        registry: Optional[ConcurrencyRegistry] = None,
        summary_writer: Optional[Callable[[str], object]] = None,
        deploy: bool = True,
    ):
        self.config = config
        # False when apply and destroy are left to a separate deployment job
        self.deploy = deploy
        self.collaborators = collaborators
        self.working_dir = config.get("terraform", {}).get("working_dir", ".")
        self.max_workers = config.get("pipeline", {}).get("max_workers", 4)
        self.registry = registry

        self.plan_producer = PlanProducer(collaborators.tool, collaborators.store, config)
        self.scanner = SecurityScanner(collaborators.scanner)
        self.executor = ApplyExecutor(
            collaborators.tool,
            collaborators.store,
            gate or ApprovalGate(config),
            config,
            summary_writer=summary_writer,
        )

        notifier_config = config.get("notifier", {})
        self.notifier = None
        if collaborators.comments is not None:
            self.notifier = Notifier(
                collaborators.comments,
                markers=notifier_config.get("markers"),
                bot_login=notifier_config.get("bot_login", ""),
            )

        self.jobs = self._build_jobs()
        self._check_graph()

    def _build_jobs(self) -> List[Job]:
        return [
            Job("validate", self._validate_job),
            Job(
                "plan",
                self._plan_job,
                needs=("validate",),
                condition=lambda c: c.is_pull_request or c.is_manual(ManualAction.PLAN),
            ),
            Job("security", self._security_job, needs=("validate",)),
            Job(
                "plan-report",
                self._plan_report_job,
                needs=("plan",),
                condition=lambda c: c.is_pull_request and self.notifier is not None,
                after_failure=True,
            ),
            Job(
                "security-report",
                self._security_report_job,
                needs=("security",),
                condition=lambda c: c.is_pull_request and self.notifier is not None,
                after_failure=True,
            ),
            Job(
                "apply",
                self._apply_job,
                needs=("security",),
                condition=lambda c: self.deploy and should_apply(c),
                cancellable=False,
            ),
            Job(
                "destroy",
                self._destroy_job,
                needs=("validate",),
                condition=lambda c: self.deploy and should_destroy(c),
                cancellable=False,
            ),
        ]

    def _check_graph(self) -> None:
        names = {job.name for job in self.jobs}
        for job in self.jobs:
            unknown = [need for need in job.needs if need not in names]
            if unknown:
                raise ValueError(f"Job '{job.name}' needs unknown job(s): {', '.join(unknown)}")

        resolved = set()
        remaining = list(self.jobs)
        while remaining:
            ready = [job for job in remaining if all(need in resolved for need in job.needs)]
            if not ready:
                raise ValueError(
                    f"Dependency cycle among jobs: {', '.join(job.name for job in remaining)}"
                )
            for job in ready:
                resolved.add(job.name)
                remaining.remove(job)

    def run(self, context: RunContext) -> PipelineResult:
        """Run every job of the DAG for context and collect the results."""
        if self.registry is not None:
            self.registry.register(context)

        result = PipelineResult()
        schedule = _Schedule(pending=list(self.jobs))

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            while schedule.pending or schedule.running:
                self._dispatch_ready(context, schedule, result, pool)
                if not schedule.running:
                    continue

                done, _ = wait(schedule.running, return_when=FIRST_COMPLETED)
                for future in done:
                    job = schedule.running.pop(future)
                    result.jobs[job.name] = future.result()
                    logger.info(f"Job {job.name}: {result.jobs[job.name].outcome.value}")

        logger.info(f"Run {context.run_id} finished: {result.status.value}")
        return result

    def _dispatch_ready(
        self,
        context: RunContext,
        schedule: _Schedule,
        result: PipelineResult,
        pool: ThreadPoolExecutor,
    ) -> None:
        progressed = True
        while progressed:
            progressed = False
            for job in list(schedule.pending):
                if not all(need in result.jobs for need in job.needs):
                    continue
                schedule.pending.remove(job)
                progressed = True

                skipped = self._skip_reason(job, context, result)
                if skipped is not None:
                    result.jobs[job.name] = skipped
                    logger.info(f"Job {job.name}: {skipped.outcome.value} ({skipped.error or 'condition'})")
                    continue

                snapshot = dict(result.jobs)
                future = pool.submit(self._execute, job, context, snapshot)
                schedule.running[future] = job

    def _skip_reason(
        self, job: Job, context: RunContext, result: PipelineResult
    ) -> Optional[JobResult]:
        allowed = (Outcome.SUCCESS, Outcome.FAILURE) if job.after_failure else (Outcome.SUCCESS,)
        blocked = [need for need in job.needs if result.jobs[need].outcome not in allowed]
        if blocked:
            return JobResult(job.name, Outcome.SKIPPED, error=f"needs {', '.join(blocked)}")
        if not job.condition(context):
            return JobResult(job.name, Outcome.SKIPPED)
        if job.cancellable and self.registry is not None and self.registry.is_superseded(context):
            return JobResult(job.name, Outcome.CANCELLED, error="superseded by a newer run")
        return None

    def _execute(self, job: Job, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        logger.info(f"Starting job {job.name}")
        try:
            return job.run(context, results)
        except PipelineError as e:
            logger.error(f"Job {job.name} failed: {e}")
            return JobResult(job.name, Outcome.FAILURE, error=str(e))
        except Exception as e:
            logger.exception(f"Job {job.name} crashed")
            return JobResult(job.name, Outcome.FAILURE, error=f"{type(e).__name__}: {e}")

    # -- jobs --------------------------------------------------------------

    def _validate_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        tool = self.collaborators.tool
        fmt = tool.fmt_check()
        init = tool.init()
        steps = [fmt, init]
        outputs = {"fmt": fmt.outcome, "init": init.outcome, "validate": Outcome.SKIPPED}

        if not init.succeeded:
            raise InitError(["terraform", "init"], init.exit_code or 1, init.output)

        validate = tool.validate()
        steps.append(validate)
        outputs["validate"] = validate.outcome

        if not validate.succeeded and (should_apply(context) or should_destroy(context)):
            return JobResult(
                "validate",
                Outcome.FAILURE,
                steps=steps,
                outputs=outputs,
                error="terraform validate failed; refusing to deploy",
            )
        # on pull requests fmt and validate failures are reported, not fatal
        return JobResult("validate", Outcome.SUCCESS, steps=steps, outputs=outputs)

    def _plan_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        change_set, steps = self.plan_producer.produce(context)
        return JobResult(
            "plan",
            Outcome.SUCCESS,
            steps=steps,
            outputs={"change_set": change_set, "plan_outcome": change_set.step_outcome},
        )

    def _security_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        report = self.scanner.run()
        step = StepResult("checkov", report.outcome, report.exit_code, report.output)
        return JobResult("security", Outcome.SUCCESS, steps=[step], outputs={"report": report})

    def _plan_report_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        validate = results["validate"].outputs
        plan = results["plan"]
        change_set = plan.outputs.get("change_set")
        plan_outcome = plan.outputs.get("plan_outcome", Outcome.FAILURE)
        if change_set is None and plan.error:
            change_set = ChangeSet(outcome=PlanOutcome.FAILURE, diff_text=plan.error)

        body = render_plan_report(
            self.notifier.markers[PLAN_CATEGORY],
            {name: validate.get(name, Outcome.SKIPPED) for name in ("fmt", "init", "validate")},
            plan_outcome,
            change_set,
            context,
            self.working_dir,
        )
        return self._post(context, "plan-report", PLAN_CATEGORY, body)

    def _security_report_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        report = results["security"].outputs.get("report")
        if report is None:
            return JobResult(
                "security-report", Outcome.SKIPPED, error="security scan produced no report"
            )
        body = render_security_report(
            self.notifier.markers[SECURITY_CATEGORY], report, context, self.working_dir
        )
        return self._post(context, "security-report", SECURITY_CATEGORY, body)

    def _post(self, context: RunContext, job_name: str, category: str, body: str) -> JobResult:
        if context.pr_number is None:
            logger.warning(f"{job_name}: run has no pull request number, nothing to comment on")
            return JobResult(job_name, Outcome.SKIPPED, error="no pull request number")
        try:
            comment = self.notifier.upsert(context.pr_number, category, body)
        except Exception as e:
            # reports are informational; a comment failure does not fail the run
            logger.warning(f"{job_name}: could not post comment: {e}")
            return JobResult(job_name, Outcome.SUCCESS, error=str(e))
        return JobResult(job_name, Outcome.SUCCESS, outputs={"comment_id": comment.id})

    def _apply_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        return self._deploy("apply", lambda: self.executor.apply(context))

    def _destroy_job(self, context: RunContext, results: Dict[str, JobResult]) -> JobResult:
        return self._deploy("destroy", lambda: self.executor.destroy(context))

    def _deploy(self, job_name: str, action: Callable) -> JobResult:
        try:
            summary = action()
        except PipelineError as e:
            logger.error(f"Job {job_name} failed: {e}")
            return JobResult(
                job_name,
                Outcome.FAILURE,
                outputs={"summary": self.executor.last_summary},
                error=str(e),
            )
        return JobResult(job_name, Outcome.SUCCESS, outputs={"summary": summary})
