"""Runs external command-line tools."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Mapping, Optional

from ..core.errors import ToolNotFoundError
from ..core.models import Outcome, StepResult

logger = logging.getLogger(__name__)


class CommandRunner:
    """Wraps subprocess for a single tool binary and working directory."""

    def __init__(
        self,
        binary: str,
        cwd: str = ".",
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.binary = binary
        self.cwd = Path(cwd)
        self.env = dict(env) if env is not None else None

    def available(self) -> bool:
        return shutil.which(self.binary) is not None

    def run(self, name: str, args: List[str], merge_stderr: bool = False) -> StepResult:
        """
        Run the binary with args and return a StepResult.

        A non-zero exit is not an exception here; callers decide whether the
        step is fatal. merge_stderr interleaves stderr into the captured output.
        """
        command = [self.binary] + args
        logger.info(f"Running: {' '.join(command)} (cwd={self.cwd})")
        try:
            process = subprocess.run(
                command,
                cwd=str(self.cwd),
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            raise ToolNotFoundError(self.binary)

        output = process.stdout or ""
        if not merge_stderr and process.stderr:
            output = f"{output}{process.stderr}"

        outcome = Outcome.SUCCESS if process.returncode == 0 else Outcome.FAILURE
        if outcome == Outcome.FAILURE:
            logger.warning(f"{name} exited with code {process.returncode}")
        return StepResult(name=name, outcome=outcome, exit_code=process.returncode, output=output)
