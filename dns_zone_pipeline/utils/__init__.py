"""
Utility functions and helpers.

This package contains validation functions and configuration loading.
"""

from .validators import validate_api_token, validate_marker, validate_ref

__all__ = ["validate_api_token", "validate_marker", "validate_ref"]
