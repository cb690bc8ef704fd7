"""
Core orchestration.

This package contains the pipeline components: plan producer, approval gate,
apply executor, security scanner, notifier and the job DAG that runs them.
"""

from .apply_executor import ApplyExecutor
from .context import RunContext
from .gate import ApprovalGate
from .notifier import Notifier
from .pipeline import Pipeline
from .plan_producer import PlanProducer
from .security_scanner import SecurityScanner

__all__ = [
    "ApplyExecutor",
    "ApprovalGate",
    "Notifier",
    "Pipeline",
    "PlanProducer",
    "RunContext",
    "SecurityScanner",
]
