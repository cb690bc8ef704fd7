#!/usr/bin/env python3
"""
DNS Zone Pipeline - Command Line Interface

Main entry point for the dns-pipeline CLI. Local commands mirror the
workstation test script; `run` executes the CI job graph for one run.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..core.bootstrap import ProjectSetup
from ..core.concurrency import ConcurrencyRegistry
from ..core.context import RunContext, context_from_environment, parse_action, parse_trigger
from ..core.errors import ConfigurationError, PipelineError
from ..core.gate import GATE_MODES, ApprovalGate
from ..core.local_workflow import COMMANDS, LocalWorkflow
from ..core.models import Outcome, PipelineResult
from ..core.pipeline import Pipeline
from ..providers.registry import build_scanner, build_tool, build_collaborators
from ..utils.config import config_logger, load_config, load_credentials
from ..utils.validators import validate_ref, validate_working_dir

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "configs/config.yaml"

_OUTCOME_STYLES = {
    Outcome.SUCCESS: "green",
    Outcome.FAILURE: "red",
    Outcome.SKIPPED: "dim",
    Outcome.CANCELLED: "yellow",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dns-pipeline",
        description="DNS Zone Pipeline - plan/apply orchestration for DNS zone declarations",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help=f"Configuration file path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument("--env-file", default=".env", help="dotenv file holding the API token")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use in-memory collaborators instead of terraform, checkov and GitHub",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    descriptions = {
        "help": "Show this help message",
        "check": "Check prerequisites",
        "fmt": "Run Terraform format check",
        "init": "Run Terraform init",
        "validate": "Run Terraform validate",
        "plan": "Run Terraform plan",
        "security": "Run security scan with Checkov",
        "act": "Test with act (GitHub Actions local runner)",
        "cleanup": "Clean up temporary files",
        "all": "Run all tests (default)",
    }
    for name in COMMANDS:
        subparsers.add_parser(name, help=descriptions[name])
    subparsers.add_parser("setup", help="Configure .env, git hooks and verify the setup")

    run_parser = subparsers.add_parser("run", help="Run the CI job graph for one pipeline run")
    run_parser.add_argument("--event", help="Trigger event (pull_request, push, workflow_dispatch)")
    run_parser.add_argument("--ref", help="Target ref, e.g. refs/heads/main")
    run_parser.add_argument("--actor", help="Triggering user")
    run_parser.add_argument("--sha", help="Commit identifier")
    run_parser.add_argument("--run-id", help="Pipeline run identifier")
    run_parser.add_argument("--pr", type=int, help="Pull request number")
    run_parser.add_argument("--action", choices=["plan", "apply", "destroy"], help="Manual dispatch action")
    run_parser.add_argument("--repository", help="owner/name of the repository")
    run_parser.add_argument("--head-sha", help="Pull request head commit the plan is made for")
    run_parser.add_argument("--merged-pr", type=int, help="Pull request merged by this push")
    run_parser.add_argument("--gate", choices=GATE_MODES, help="Override the approval gate mode")
    run_parser.add_argument(
        "--no-deploy",
        dest="deploy",
        action="store_false",
        help="Plan, scan and report only; leave apply and destroy to a deployment job",
    )
    return parser


def resolve_context(args: argparse.Namespace) -> RunContext:
    """Build the run context from flags, falling back to the CI environment."""
    if args.event:
        context = RunContext(trigger=parse_trigger(args.event), ref=args.ref or "")
    else:
        context = context_from_environment()

    context = context.with_overrides(
        ref=args.ref,
        actor=args.actor,
        sha=args.sha,
        run_id=args.run_id,
        pr_number=args.pr,
        repository=args.repository,
        action=parse_action(args.action),
        head_sha=args.head_sha,
        merged_pr=args.merged_pr,
    )
    if not validate_ref(context.ref):
        raise ConfigurationError(f"Invalid or missing ref '{context.ref}'")
    return context


def apply_overrides(config: Dict, args: argparse.Namespace) -> Dict:
    if args.mock:
        config["tools"]["provider"] = "mock"
        config["notifier"]["provider"] = "mock"
    if getattr(args, "gate", None):
        config["gate"]["mode"] = args.gate
    if args.verbose:
        config["logging"]["level"] = "DEBUG"
    return config


def print_result(result: PipelineResult) -> None:
    table = Table(title="Pipeline Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Outcome")
    table.add_column("Details", style="white")

    for name, job in result.jobs.items():
        style = _OUTCOME_STYLES[job.outcome]
        table.add_row(name, f"[{style}]{job.outcome.value}[/{style}]", job.error or "")

    console.print(table)
    style = _OUTCOME_STYLES[result.status]
    console.print(f"\n[bold]Run status: [{style}]{result.status.value}[/{style}][/bold]")


def run_pipeline(config: Dict, args: argparse.Namespace) -> int:
    context = resolve_context(args)
    credentials = load_credentials(args.env_file)
    if not credentials.configured and config["tools"]["provider"] == "cli":
        raise ConfigurationError("CLOUDFLARE_API_TOKEN is not set")
    working_dir = config.get("terraform", {}).get("working_dir", ".")
    if config["tools"]["provider"] == "cli" and not validate_working_dir(working_dir):
        raise ConfigurationError(f"Terraform working directory '{working_dir}' not found")

    collaborators = build_collaborators(
        config,
        tool_env=credentials.tool_environment(),
        repository=context.repository,
    )
    logger.info(f"Pipeline run {context.run_id}: {context.event_name} on {context.ref}")
    pipeline = Pipeline(
        config,
        collaborators,
        gate=ApprovalGate(config),
        registry=ConcurrencyRegistry(config["concurrency"]["state_dir"]),
        deploy=args.deploy,
    )
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        disable=config["gate"]["mode"] == "prompt",
    ) as progress:
        progress.add_task(f"Running pipeline for {context.event_name} on {context.ref}...", total=None)
        result = pipeline.run(context)

    print_result(result)
    return 1 if result.failed else 0


def run_local(config: Dict, args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if args.command == "help":
        parser.print_help()
        return 0

    credentials = load_credentials(args.env_file)
    tool_env = credentials.tool_environment()

    if args.command == "setup":
        setup = ProjectSetup(
            config,
            tool_factory=lambda creds: build_tool(config, creds.tool_environment()),
        )
        return 0 if setup.run() else 1

    workflow = LocalWorkflow(
        config,
        tool=build_tool(config, tool_env),
        scanner=build_scanner(config),
        credentials_loader=load_credentials,
    )
    return 0 if workflow.run_command(args.command) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    args.command = args.command or "all"

    if args.config and not Path(args.config).exists():
        print(f"Error: Configuration file '{args.config}' not found")
        return 1

    try:
        config = apply_overrides(load_config(args.config or DEFAULT_CONFIG), args)
        config_logger(config)

        if args.command == "run":
            return run_pipeline(config, args)
        return run_local(config, args, parser)

    except (ConfigurationError, PipelineError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
