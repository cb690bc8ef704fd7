"""
Checkov security scanner adapter.

The scan always runs in soft-fail mode and captures stdout and stderr
together. A scanner that exits non-zero, or is not installed at all, yields a
failed step but never raises.
"""

import logging
from typing import Dict, List, Mapping, Optional

from .base_provider import Scanner
from .command import CommandRunner
from ..core.errors import ToolNotFoundError
from ..core.models import Outcome, StepResult

logger = logging.getLogger(__name__)


class CheckovScanner(Scanner):
    """Static scan of the terraform declarations with checkov."""

    def __init__(self, config: Dict, working_dir: str = ".", env: Optional[Mapping[str, str]] = None):
        self.binary = config.get("binary", "checkov")
        self.framework = config.get("framework", "terraform")
        self.config_file = config.get("config_file", "")
        self.working_dir = working_dir
        self.runner = CommandRunner(self.binary, cwd=".", env=env)

    def _arguments(self) -> List[str]:
        args = [
            "-d",
            self.working_dir,
            "--framework",
            self.framework,
            "--compact",
            "--quiet",
            "--soft-fail",
        ]
        if self.config_file:
            args.extend(["--config-file", self.config_file])
        return args

    def scan(self) -> StepResult:
        try:
            result = self.runner.run("checkov", self._arguments(), merge_stderr=True)
        except ToolNotFoundError as e:
            logger.warning(f"Security scan could not run: {e}")
            return StepResult(name="checkov", outcome=Outcome.FAILURE, exit_code=None, output=str(e))

        logger.info(f"Checkov finished with exit code {result.exit_code}")
        return result
