"""
Step definitions for DNS Zone Pipeline scenario tests.
"""

from behave import given, then, when

from dns_zone_pipeline.core.context import MAIN_REF, RunContext
from dns_zone_pipeline.core.models import ManualAction, Outcome, TriggerKind
from dns_zone_pipeline.core.notifier import DEFAULT_MARKERS
from dns_zone_pipeline.core.pipeline import Pipeline
from dns_zone_pipeline.providers import (
    Collaborators,
    LocalArtifactStore,
    MockCommentAPI,
    MockScanner,
    MockTerraform,
)


def _next_run_id(context):
    return str(len(context.results) + 1)


def _run(context, run_context, tool=None):
    context.tool = tool or context.make_tool()
    collaborators = Collaborators(
        tool=context.tool,
        scanner=context.scanner,
        store=context.store,
        comments=context.comments,
    )
    pipeline = Pipeline(context.test_config, collaborators, summary_writer=context.summaries.append)
    context.result = pipeline.run(run_context)
    context.results.append(context.result)


def _comments(context, category):
    marker = DEFAULT_MARKERS[category]
    return [c for c in context.comments.comments.get(context.pr_number, []) if marker in c.body]


@given("the pipeline uses mock collaborators")
def step_impl(context):
    context.store = LocalArtifactStore(str(context.temp_dir / "artifacts"))
    context.comments = MockCommentAPI()
    context.scanner = MockScanner()
    context.tool_options = {}
    context.make_tool = lambda **overrides: MockTerraform(
        working_dir=str(context.work_dir), **{**context.tool_options, **overrides}
    )


@given('the plan fails with "{message}"')
def step_impl(context, message):
    context.tool_options = {"fail": {"plan"}, "outputs": {"plan": message}}


@given('the apply fails with "{message}"')
def step_impl(context, message):
    context.tool_options = {"fail": {"apply"}, "outputs": {"apply": message}}


@given("the security scan reports {count:d} failed checks")
def step_impl(context, count):
    context.scanner = MockScanner(
        output=f"Passed checks: 1, Failed checks: {count}, Skipped checks: 0", exit_code=1
    )


@given("the approval gate denies deployments")
def step_impl(context):
    context.test_config["gate"]["mode"] = "deny"


@given('a pull request run produced the plan "{payload}"')
def step_impl(context, payload):
    _run(context, _pr_context(context), tool=context.make_tool(plan_payload=payload.encode()))
    assert context.result.outcome_of("plan") == Outcome.SUCCESS


@given('pull request #{number:d} produced the plan "{payload}"')
def step_impl(context, number, payload):
    _run(context, _pr_context(context, number), tool=context.make_tool(plan_payload=payload.encode()))
    assert context.result.outcome_of("plan") == Outcome.SUCCESS


@given('the declarations fail validation')
def step_impl(context):
    context.tool_options = {"fail": {"validate"}}


def _pr_context(context, number=None):
    number = number or context.pr_number
    return RunContext(
        trigger=TriggerKind.PULL_REQUEST,
        ref=f"refs/pull/{number}/merge",
        actor="reviewer",
        sha=f"merge-{number}",
        run_id=_next_run_id(context),
        pr_number=number,
        head_sha=f"head-{number}",
    )


def _merge_context(context, number):
    return RunContext(
        trigger=TriggerKind.PUSH,
        ref=MAIN_REF,
        actor="merger",
        sha="abc123",
        run_id=_next_run_id(context),
        merged_pr=number,
    )


@when("a pull request run executes")
def step_impl(context):
    _run(context, _pr_context(context))


@when("the declarations change to add {count:d} records")
def step_impl(context, count):
    context.tool_options = {
        "outputs": {"plan": f"Plan: {count} to add, 0 to change, 0 to destroy."}
    }


@when('the merge to main runs with a fresh plan "{payload}"')
def step_impl(context, payload):
    run_context = _merge_context(context, context.pr_number)
    _run(context, run_context, tool=context.make_tool(plan_payload=payload.encode()))


@when('the merge of pull request #{number:d} runs with a fresh plan "{payload}"')
def step_impl(context, number, payload):
    run_context = _merge_context(context, number)
    _run(context, run_context, tool=context.make_tool(plan_payload=payload.encode()))


@when('a push to "{ref}" runs')
def step_impl(context, ref):
    _run(context, RunContext(trigger=TriggerKind.PUSH, ref=ref, run_id=_next_run_id(context)))


@when('a manual "{action}" run executes')
def step_impl(context, action):
    run_context = RunContext(
        trigger=TriggerKind.MANUAL_DISPATCH,
        ref=MAIN_REF,
        run_id=_next_run_id(context),
        action=ManualAction(action),
    )
    _run(context, run_context)


@then('the job "{job}" succeeds')
def step_impl(context, job):
    assert context.result.outcome_of(job) == Outcome.SUCCESS, context.result.jobs[job]


@then('the job "{job}" fails')
def step_impl(context, job):
    assert context.result.outcome_of(job) == Outcome.FAILURE


@then('the job "{job}" is skipped')
def step_impl(context, job):
    assert context.result.outcome_of(job) == Outcome.SKIPPED


@then("the run succeeds")
def step_impl(context):
    assert not context.result.failed


@then("the run fails")
def step_impl(context):
    assert context.result.failed


@then('the pull request has {count:d} "{category}" comment')
def step_impl(context, count, category):
    assert len(_comments(context, category)) == count


@then('the "{category}" comment mentions "{text}"')
def step_impl(context, category, text):
    comments = _comments(context, category)
    assert comments, f"no {category} comment"
    assert text in comments[0].body, comments[0].body


@then('the applied plan is "{payload}"')
def step_impl(context, payload):
    assert context.tool.applied_plans == [payload.encode()], context.tool.applied_plans


@then("nothing was applied")
def step_impl(context):
    assert "apply" not in context.tool.calls


@then('the deployment summary mentions "{text}"')
def step_impl(context, text):
    assert context.summaries, "no deployment summary"
    assert text in context.summaries[-1], context.summaries[-1]


@then("no deployment summary is written")
def step_impl(context):
    assert context.summaries == []
