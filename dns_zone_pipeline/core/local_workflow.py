"""
Local Workflow - run the pipeline's checks on a workstation before pushing.

Each command composes the same external tool calls the CI jobs make. Commands
return True on success; `all` stops at the first failing step and always
cleans up afterwards.
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Optional

from rich.console import Console

from .errors import ToolNotFoundError
from .security_scanner import SecurityScanner
from ..providers.base_provider import ProvisioningTool, Scanner
from ..providers.command import CommandRunner
from ..utils.config import Credentials, load_credentials
from ..utils.validators import validate_working_dir

console = Console()
logger = logging.getLogger(__name__)

COMMANDS = ("help", "check", "fmt", "init", "validate", "plan", "security", "act", "cleanup", "all")

ENV_TEMPLATE = "# Cloudflare API token used by terraform\nCLOUDFLARE_API_TOKEN=your_cloudflare_api_token_here\n"

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_STYLES = {
    "info": "[blue][INFO][/blue]",
    "success": "[green][SUCCESS][/green]",
    "warning": "[yellow][WARNING][/yellow]",
    "error": "[red][ERROR][/red]",
}


def say(level: str, message: str) -> None:
    console.print(f"{_STYLES[level]} {message}")
    logger.log(_LOG_LEVELS[level], message)


def ensure_env_file(project_root: Path) -> bool:
    """Create .env from .env.example when missing. Returns True if it was created."""
    env_file = project_root / ".env"
    if env_file.exists():
        return False

    example = project_root / ".env.example"
    if example.exists():
        shutil.copyfile(example, env_file)
    else:
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
    return True


class LocalWorkflow:
    """The local test commands."""

    def __init__(
        self,
        config: Dict,
        tool: ProvisioningTool,
        scanner: Scanner,
        project_root: str = ".",
        credentials_loader: Callable[[str], Credentials] = load_credentials,
    ):
        terraform = config.get("terraform", {})
        self.config = config
        self.tool = tool
        self.scanner = scanner
        self.project_root = Path(project_root)
        self.working_dir = self.project_root / terraform.get("working_dir", ".")
        self.plan_file = terraform.get("plan_file", "tfplan")
        self.tool_binary = terraform.get("binary", "terraform")
        self.check_binaries = config.get("tools", {}).get("provider", "cli") == "cli"
        self.credentials_loader = credentials_loader
        self.act_runner = CommandRunner(config.get("act", {}).get("binary", "act"), cwd=str(self.project_root))

    def check(self) -> bool:
        say("info", "Checking prerequisites...")

        if self.check_binaries and shutil.which(self.tool_binary) is None:
            say("error", f"Terraform is not installed. Please install Terraform {self.config['terraform'].get('version', '')}")
            return False
        say("info", f"Current Terraform version: {self.tool.version()}")

        if not validate_working_dir(str(self.working_dir)):
            say("error", f"Terraform working directory {self.working_dir} does not exist")
            return False

        if ensure_env_file(self.project_root):
            say("warning", ".env file not found. Created it from the template")
            say("warning", "Please edit .env file with your actual values before running tests")

        credentials = self.credentials_loader(str(self.project_root / ".env"))
        if not credentials.configured:
            say("error", "CLOUDFLARE_API_TOKEN is not set. Please set it in .env file")
            return False

        say("success", "Prerequisites check passed")
        return True

    def _step(self, label: str, action: Callable, hint: Optional[str] = None) -> bool:
        say("info", f"Running Terraform {label}...")
        result = action()
        if result.succeeded:
            say("success", f"Terraform {label} passed")
            return True

        console.print(result.output)
        say("error", f"Terraform {label} failed")
        if hint:
            say("info", hint)
        return False

    def fmt(self) -> bool:
        return self._step(
            "format check",
            self.tool.fmt_check,
            hint="Run 'terraform fmt -recursive' to fix formatting issues",
        )

    def init(self) -> bool:
        return self._step("init", self.tool.init)

    def validate(self) -> bool:
        return self._step("validate", self.tool.validate)

    def plan(self) -> bool:
        return self._step("plan", lambda: self.tool.plan(self.plan_file))

    def security(self) -> bool:
        say("info", "Running security scan with Checkov...")
        report = SecurityScanner(self.scanner).run()
        console.print(report.output)
        if report.failed or report.exit_code not in (0, None):
            say("warning", "Security scan found issues (soft fail mode)")
        else:
            say("success", "Security scan completed")
        return True

    def act(self) -> bool:
        say("info", "Testing with act (GitHub Actions local runner)...")
        if not self.act_runner.available():
            say("warning", "act is not installed. Please install act to test GitHub Actions locally")
            say("info", "Install act: https://github.com/nektos/act")
            return False
        try:
            result = self.act_runner.run("act", ["pull_request", "-n"])
        except ToolNotFoundError as e:
            say("error", str(e))
            return False
        if result.succeeded:
            say("success", "act workflow test passed")
            return True
        console.print(result.output)
        say("error", "act workflow test failed")
        return False

    def cleanup(self) -> bool:
        say("info", "Cleaning up...")
        for name in (self.plan_file, "terraform.log"):
            path = self.working_dir / name
            if path.exists():
                path.unlink()
        say("success", "Cleanup completed")
        return True

    def run_all(self) -> bool:
        say("info", "Running all tests...")
        steps: List[Callable[[], bool]] = [
            self.check,
            self.fmt,
            self.init,
            self.validate,
            self.plan,
            self.security,
        ]
        passed = True
        try:
            for step in steps:
                if not step():
                    passed = False
                    break
        finally:
            self.cleanup()

        if passed:
            say("success", "All tests passed! ✅")
        else:
            say("error", "Some tests failed! ❌")
        return passed

    def run_command(self, command: str) -> bool:
        """Dispatch a command name the way the local test script does."""
        sequences = {
            "check": [self.check],
            "fmt": [self.check, self.fmt],
            "init": [self.check, self.init],
            "validate": [self.check, self.init, self.validate],
            "plan": [self.check, self.init, self.plan],
            "security": [self.check, self.security],
            "act": [self.act],
            "cleanup": [self.cleanup],
            "all": [self.run_all],
        }
        if command not in sequences:
            say("error", f"Unknown command: {command}")
            return False
        return all(step() for step in sequences[command])
