"""
Terraform plan output parsing.

Extracts the add/change/destroy counts from the "Plan:" line, and
recognises the no-changes message.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_PLAN_LINE = re.compile(
    r"Plan:\s+(\d+)\s+to\s+add,\s+(\d+)\s+to\s+change,\s+(\d+)\s+to\s+destroy"
)
_NO_CHANGES = re.compile(r"No changes\.|Your infrastructure matches the configuration")


@dataclass(frozen=True)
class PlanSummary:
    to_add: int = 0
    to_change: int = 0
    to_destroy: int = 0
    no_changes: bool = False


class PlanOutputParser:
    def __init__(self, output: str):
        self.output = output or ""

    def parse(self) -> Optional[PlanSummary]:
        """Parse the change counts from plan output; None if the output has neither form."""
        if _NO_CHANGES.search(self.output):
            return PlanSummary(no_changes=True)

        match = _PLAN_LINE.search(self.output)
        if not match:
            logger.debug("Plan output has no summary line")
            return None

        to_add, to_change, to_destroy = (int(group) for group in match.groups())
        logger.info(f"Plan summary: {to_add} to add, {to_change} to change, {to_destroy} to destroy")
        return PlanSummary(to_add=to_add, to_change=to_change, to_destroy=to_destroy)
