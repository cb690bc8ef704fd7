"""
Terraform provisioning tool adapter.

This module drives the terraform CLI with the exact subcommands and flags the
pipeline relies on. The provider token is passed to each child process
through the injected environment, never through the parent process.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from .base_provider import ProvisioningTool
from .command import CommandRunner
from ..core.models import StepResult

logger = logging.getLogger(__name__)


class TerraformCLI(ProvisioningTool):
    """Terraform provider implementation using the terraform binary."""

    def __init__(self, config: Dict, env: Optional[Mapping[str, str]] = None):
        """Initialize the adapter from the terraform config section."""
        self.config = config
        self.binary = config.get("binary", "terraform")
        self.working_dir = config.get("working_dir", ".")
        self.expected_version = config.get("version", "")
        self.runner = CommandRunner(self.binary, cwd=self.working_dir, env=env)

        logger.info(f"Terraform adapter initialized for {self.working_dir}")

    def fmt_check(self) -> StepResult:
        return self.runner.run("fmt", ["fmt", "-check", "-recursive"])

    def init(self) -> StepResult:
        return self.runner.run("init", ["init", "-input=false"])

    def validate(self) -> StepResult:
        return self.runner.run("validate", ["validate", "-no-color"])

    def plan(self, out_file: str) -> StepResult:
        return self.runner.run("plan", ["plan", "-no-color", "-input=false", f"-out={out_file}"])

    def apply(self, plan_file: Optional[Path] = None) -> StepResult:
        if plan_file is not None:
            # terraform runs inside working_dir, so a relative path would resolve twice
            plan_path = str(Path(plan_file).resolve())
            return self.runner.run("apply", ["apply", "-no-color", "-input=false", plan_path])
        return self.runner.run("apply", ["apply", "-no-color", "-input=false", "-auto-approve"])

    def destroy(self) -> StepResult:
        return self.runner.run("destroy", ["destroy", "-no-color", "-input=false", "-auto-approve"])

    def format(self) -> StepResult:
        """Rewrite files in canonical format."""
        return self.runner.run("fmt-fix", ["fmt", "-recursive"])

    def version(self) -> str:
        """Return the installed version, falling back to the configured one."""
        result = self.runner.run("version", ["version", "-json"])
        if result.succeeded:
            try:
                return json.loads(result.output).get("terraform_version", self.expected_version)
            except json.JSONDecodeError:
                logger.debug(f"Unparseable terraform version output: {result.output!r}")
        return self.expected_version or "unknown"
