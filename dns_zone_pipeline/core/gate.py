"""
Approval gate for deployment environments.

Modes:
    environment  the CI platform enforces environment protection before the
                 job starts, so reaching the gate means it was approved
    prompt       ask the operator on the console
    deny         never approve; used to exercise the guard without applying
"""

import logging
from typing import Callable, Dict, Optional

from rich.console import Console
from rich.prompt import Confirm

from .context import RunContext
from .errors import ConfigurationError, GateBlockedError
from .models import GateState

console = Console()
logger = logging.getLogger(__name__)

GATE_MODES = ("environment", "prompt", "deny")


class ApprovalGate:
    """Blocks an apply until the target environment is approved."""

    def __init__(self, config: Dict, confirm: Optional[Callable[[str], bool]] = None):
        gate_config = config.get("gate", {})
        self.environment = gate_config.get("environment", "production")
        self.mode = gate_config.get("mode", "environment")
        if self.mode not in GATE_MODES:
            raise ConfigurationError(f"Unknown gate mode '{self.mode}'")
        self._confirm = confirm or (lambda question: Confirm.ask(question, console=console))

    def state(self, context: RunContext, action: str = "apply") -> GateState:
        if self.mode == "environment":
            return GateState.APPROVED
        if self.mode == "deny":
            return GateState.PENDING

        question = (
            f"[bold]{action.capitalize()} to '{self.environment}' requested by "
            f"@{context.actor} at {context.sha[:12] or 'working tree'}. Approve?[/bold]"
        )
        return GateState.APPROVED if self._confirm(question) else GateState.PENDING

    def require(self, context: RunContext, action: str = "apply") -> None:
        """Return when approved, raise GateBlockedError otherwise."""
        state = self.state(context, action)
        logger.info(f"Gate for '{self.environment}': {state.value}")
        if state != GateState.APPROVED:
            raise GateBlockedError(self.environment)
