"""
Parsers for external tool output.
"""

from .plan_output import PlanOutputParser, PlanSummary
from .scan_output import ScanCounts, ScanOutputParser

__all__ = ["PlanOutputParser", "PlanSummary", "ScanCounts", "ScanOutputParser"]
