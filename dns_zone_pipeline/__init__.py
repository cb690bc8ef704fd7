"""
DNS Zone Pipeline - plan/apply orchestration for DNS zone declarations

Drives terraform's plan/apply lifecycle for Cloudflare zone resources the way
the CI pipeline does: validate, plan on pull requests, gated apply on main,
soft-fail security scanning and one status comment per report.
"""

__version__ = "1.0.0"
__author__ = "DNS Zone Pipeline Team"
__description__ = "Plan/apply orchestration for DNS zone infrastructure-as-code"

# core first: providers and utils import core submodules
from .core.pipeline import Pipeline
from .core.apply_executor import ApplyExecutor
from .core.notifier import Notifier
from .providers.registry import build_collaborators

__all__ = [
    "Pipeline",
    "ApplyExecutor",
    "Notifier",
    "build_collaborators",
]
