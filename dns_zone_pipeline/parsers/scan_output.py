"""
Checkov output parsing.

Reads the check counts from the Checkov summary line.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_COUNTS = re.compile(
    r"Passed checks:\s*(\d+),\s*Failed checks:\s*(\d+),\s*Skipped checks:\s*(\d+)"
)


@dataclass(frozen=True)
class ScanCounts:
    passed: int = 0
    failed: int = 0
    skipped: int = 0


class ScanOutputParser:
    def __init__(self, output: str):
        self.output = output or ""

    def parse(self) -> ScanCounts:
        """Sum the per-framework check counts in checkov CLI output."""
        passed = failed = skipped = 0
        for match in _COUNTS.finditer(self.output):
            passed += int(match.group(1))
            failed += int(match.group(2))
            skipped += int(match.group(3))

        logger.info(f"Scan summary: {passed} passed, {failed} failed, {skipped} skipped")
        return ScanCounts(passed=passed, failed=failed, skipped=skipped)
