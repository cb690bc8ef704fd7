"""
Project Setup - first-time configuration of a workstation.

Checks the system, writes the .env file (prompting for the provider token
when it is missing), installs a git pre-commit hook and verifies that the
declarations initialize, validate and can reach the provider API.
"""

import logging
import platform
import shutil
import stat
from pathlib import Path
from typing import Callable, Dict, Optional

from dotenv import set_key
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from .local_workflow import ensure_env_file, say
from ..providers.base_provider import ProvisioningTool
from ..utils.config import TOKEN_VARIABLE, Credentials, load_credentials
from ..utils.validators import validate_api_token

console = Console()
logger = logging.getLogger(__name__)

SUPPORTED_SYSTEMS = ("Linux", "Darwin", "Windows")

PRE_COMMIT_HOOK = """#!/bin/sh
# Pre-commit hook for Terraform
echo "Running pre-commit checks..."

if ! terraform fmt -check -recursive; then
    echo "Terraform files are not formatted. Run 'terraform fmt -recursive' to fix."
    exit 1
fi

if ! terraform validate; then
    echo "Terraform validation failed."
    exit 1
fi

echo "Pre-commit checks passed"
"""

REPOSITORY_GUIDANCE = """[bold]1. Repository Secrets[/bold]
   Settings > Secrets and variables > Actions
   Add secret: CLOUDFLARE_API_TOKEN

[bold]2. Environment Protection[/bold]
   Settings > Environments
   Create environment: {environment}
   Add protection rules (required reviewers recommended)

[bold]3. Branch Protection[/bold]
   Settings > Branches, add a rule for main
   Require pull request reviews and passing status checks"""


class ProjectSetup:
    """Runs the setup steps in order."""

    def __init__(
        self,
        config: Dict,
        tool_factory: Callable[[Credentials], ProvisioningTool],
        project_root: str = ".",
        ask_token: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.tool_factory = tool_factory
        self.project_root = Path(project_root)
        self.env_file = self.project_root / ".env"
        self.tool_binary = config.get("terraform", {}).get("binary", "terraform")
        self.check_binaries = config.get("tools", {}).get("provider", "cli") == "cli"
        self._ask_token = ask_token or (
            lambda: Prompt.ask("Enter your Cloudflare API token", password=True, console=console)
        )

    def check_system(self) -> bool:
        say("info", "Checking system requirements...")
        system = platform.system()
        if system not in SUPPORTED_SYSTEMS:
            say("error", f"Unsupported operating system: {system}")
            return False
        say("info", f"Operating system: {system}")

        if shutil.which("git") is None:
            say("error", "Git is not installed. Please install Git first.")
            return False
        if self.check_binaries and shutil.which(self.tool_binary) is None:
            say("error", f"{self.tool_binary} is not installed. Install Terraform and re-run setup.")
            return False

        say("success", "System requirements check passed")
        return True

    def setup_environment(self) -> Credentials:
        say("info", "Setting up environment configuration...")
        if ensure_env_file(self.project_root):
            say("success", "Created .env file from template")
        else:
            say("info", ".env file already exists")

        credentials = load_credentials(str(self.env_file), env={})
        if credentials.configured:
            say("success", "Cloudflare API token already configured")
            return credentials

        console.print(
            "You need a Cloudflare API token with Zone:Edit and DNS:Edit permissions.\n"
            "Get your token at: https://dash.cloudflare.com/profile/api-tokens"
        )
        token = (self._ask_token() or "").strip()
        if not validate_api_token(token):
            say("warning", "No API token provided. You'll need to set it manually in .env file")
            return credentials

        set_key(str(self.env_file), TOKEN_VARIABLE, token, quote_mode="never")
        say("success", "Cloudflare API token configured")
        return Credentials(api_token=token)

    def setup_git_hooks(self) -> bool:
        say("info", "Setting up Git hooks...")
        hook_dir = self.project_root / ".git" / "hooks"
        if not hook_dir.is_dir():
            say("warning", "Not in a Git repository. Skipping Git hooks setup.")
            return False

        hook = hook_dir / "pre-commit"
        hook.write_text(PRE_COMMIT_HOOK, encoding="utf-8")
        hook.chmod(hook.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        say("success", "Git pre-commit hook installed")
        return True

    def verify(self, credentials: Credentials) -> bool:
        say("info", "Verifying Terraform configuration...")
        tool = self.tool_factory(credentials)
        if not tool.init().succeeded:
            say("error", "Terraform initialization failed")
            return False
        say("success", "Terraform initialization successful")

        if not tool.validate().succeeded:
            say("error", "Terraform validation failed")
            return False
        say("success", "Terraform validation successful")

        if tool.fmt_check().succeeded:
            say("success", "Terraform formatting is correct")
        else:
            say("warning", "Terraform files need formatting. Running 'terraform fmt'.")
            tool.format()
            say("success", "Terraform files formatted")

        if not credentials.configured:
            say("warning", "Skipping API connectivity test (no token configured)")
            return True

        say("info", "Testing Cloudflare API connectivity...")
        plan_file = self.config.get("terraform", {}).get("plan_file", "tfplan")
        if not tool.plan(plan_file).succeeded:
            say("error", "Cloudflare API connectivity failed. Check your API token.")
            return False
        say("success", "Cloudflare API connectivity verified")
        return True

    def print_guidance(self) -> None:
        environment = self.config.get("gate", {}).get("environment", "production")
        console.print(
            Panel(
                REPOSITORY_GUIDANCE.format(environment=environment),
                title="GitHub repository setup",
            )
        )

    def run(self) -> bool:
        console.print(Panel("Cloudflare Terraform Pipeline Setup", style="bold"))
        if not self.check_system():
            return False
        credentials = self.setup_environment()
        self.setup_git_hooks()
        if not self.verify(credentials):
            return False
        self.print_guidance()
        say("success", "Setup completed successfully! 🎉")
        return True
