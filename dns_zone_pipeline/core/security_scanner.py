"""
Security Scanner - soft-fail static analysis of the declarations.

The report is informational. The scanner's exit status is recorded but never
turned into a pipeline failure.
"""

import logging

from .models import Outcome, ScanReport
from ..parsers.scan_output import ScanOutputParser
from ..providers.base_provider import Scanner

logger = logging.getLogger(__name__)


class SecurityScanner:
    def __init__(self, scanner: Scanner):
        self.scanner = scanner

    def run(self) -> ScanReport:
        result = self.scanner.scan()
        counts = ScanOutputParser(result.output).parse()

        # the scan step itself succeeds whenever the scanner produced a report
        outcome = Outcome.SUCCESS if result.exit_code is not None else Outcome.FAILURE
        if counts.failed:
            logger.warning(f"Security scan reported {counts.failed} failed check(s) (soft fail)")

        return ScanReport(
            output=result.output,
            outcome=outcome,
            exit_code=result.exit_code,
            passed=counts.passed,
            failed=counts.failed,
            skipped=counts.skipped,
        )
