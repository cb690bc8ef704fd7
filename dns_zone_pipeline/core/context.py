"""
Run context - identifies a single pipeline execution.

A RunContext is created once per run, either from the CI environment
(GitHub Actions variables and the event payload) or from explicit CLI flags,
and is never mutated afterwards.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .models import ManualAction, TriggerKind

logger = logging.getLogger(__name__)

MAIN_REF = "refs/heads/main"

# merge commit and squash-merge subject lines
_MERGED_PR = re.compile(r"^Merge pull request #(\d+)|\(#(\d+)\)\s*$")

# CI event names mapped onto trigger kinds
_EVENT_TRIGGERS = {
    "pull_request": TriggerKind.PULL_REQUEST,
    "pull_request_target": TriggerKind.PULL_REQUEST,
    "push": TriggerKind.PUSH,
    "workflow_dispatch": TriggerKind.MANUAL_DISPATCH,
    "manual_dispatch": TriggerKind.MANUAL_DISPATCH,
}


@dataclass(frozen=True)
class RunContext:
    """Immutable description of the current run."""

    trigger: TriggerKind
    ref: str
    actor: str = "unknown"
    sha: str = ""
    run_id: str = "local"
    workflow: str = "Terraform Cloudflare GitOps"
    repository: str = ""
    pr_number: Optional[int] = None
    action: Optional[ManualAction] = None
    # commit a pull request plan was made for (the PR head)
    head_sha: str = ""
    # what a push brought in: its commits and the pull request it merged
    pushed_commits: Tuple[str, ...] = ()
    merged_pr: Optional[int] = None

    @property
    def event_name(self) -> str:
        if self.trigger == TriggerKind.MANUAL_DISPATCH:
            return "workflow_dispatch"
        return self.trigger.value

    @property
    def is_pull_request(self) -> bool:
        return self.trigger == TriggerKind.PULL_REQUEST

    @property
    def is_main_push(self) -> bool:
        return self.ref == MAIN_REF and self.trigger == TriggerKind.PUSH

    def is_manual(self, action: ManualAction) -> bool:
        return self.trigger == TriggerKind.MANUAL_DISPATCH and self.action == action

    @property
    def plan_commit(self) -> str:
        """The commit a plan produced by this run describes."""
        return self.head_sha or self.sha

    @property
    def deployable_commits(self) -> Tuple[str, ...]:
        """Commits whose reviewed plan this run may apply."""
        return tuple(dict.fromkeys(c for c in (self.sha,) + self.pushed_commits if c))

    def with_overrides(self, **changes) -> "RunContext":
        """Return a copy with the given fields replaced; this instance is untouched."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def parse_trigger(event_name: str) -> TriggerKind:
    try:
        return _EVENT_TRIGGERS[event_name]
    except KeyError:
        raise ConfigurationError(f"Unsupported trigger event '{event_name}'")


def parse_action(action: Optional[str]) -> Optional[ManualAction]:
    if not action:
        return None
    try:
        return ManualAction(action.lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown manual action '{action}' (expected plan, apply or destroy)"
        )


def parse_merged_pr(message: str) -> Optional[int]:
    """Pull request number from a merge or squash-merge commit subject, if any."""
    subject = (message or "").splitlines()[0] if message else ""
    match = _MERGED_PR.search(subject)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def _load_event_payload(event_path: Optional[str]) -> Dict:
    if not event_path or not Path(event_path).exists():
        return {}
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read event payload {event_path}: {e}")
        return {}


def context_from_environment(env: Optional[Mapping[str, str]] = None) -> RunContext:
    """Build a RunContext from GitHub Actions style environment variables."""
    env = os.environ if env is None else env

    event_name = env.get("GITHUB_EVENT_NAME", "")
    if not event_name:
        raise ConfigurationError("GITHUB_EVENT_NAME is not set; pass --event explicitly")

    trigger = parse_trigger(event_name)
    payload = _load_event_payload(env.get("GITHUB_EVENT_PATH"))

    pr_number = None
    head_sha = ""
    if trigger == TriggerKind.PULL_REQUEST:
        pull_request = payload.get("pull_request", {})
        pr_number = pull_request.get("number") or payload.get("number")
        head_sha = pull_request.get("head", {}).get("sha", "")

    pushed_commits = ()
    merged_pr = None
    if trigger == TriggerKind.PUSH:
        pushed_commits = tuple(c["id"] for c in payload.get("commits", []) if c.get("id"))
        merged_pr = parse_merged_pr(payload.get("head_commit", {}).get("message", ""))

    action = None
    if trigger == TriggerKind.MANUAL_DISPATCH:
        inputs = payload.get("inputs", {})
        action = parse_action(inputs.get("action") or env.get("INPUT_ACTION", "plan"))

    context = RunContext(
        trigger=trigger,
        ref=env.get("GITHUB_REF", ""),
        actor=env.get("GITHUB_ACTOR", "unknown"),
        sha=env.get("GITHUB_SHA", ""),
        run_id=env.get("GITHUB_RUN_ID", "local"),
        workflow=env.get("GITHUB_WORKFLOW", "Terraform Cloudflare GitOps"),
        repository=env.get("GITHUB_REPOSITORY", ""),
        pr_number=int(pr_number) if pr_number else None,
        action=action,
        head_sha=head_sha,
        pushed_commits=pushed_commits,
        merged_pr=merged_pr,
    )
    logger.info(
        f"Run context: trigger={context.trigger.value} ref={context.ref} "
        f"actor={context.actor} run={context.run_id}"
    )
    return context
