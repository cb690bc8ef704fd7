"""
Validators - Input validation for pipeline settings

This module provides validation functions for git refs, comment markers,
artifact names, retention periods and credentials so that misconfiguration
is caught before any external tool is invoked.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

PLACEHOLDER_TOKEN = "your_cloudflare_api_token_here"

_ARTIFACT_NAME = re.compile(r"^[A-Za-z0-9._-]+$")


def validate_ref(ref: str) -> bool:
    """
    Validate a fully qualified git ref.

    Args:
        ref: The ref to validate, e.g. refs/heads/main

    Returns:
        True if valid, False otherwise
    """
    if not ref or not isinstance(ref, str):
        return False

    if not ref.startswith("refs/"):
        logger.warning(f"Ref is not fully qualified: {ref}")
        return False

    # git check-ref-format rules that matter for CI refs
    if ".." in ref or ref.endswith("/") or ref.endswith(".lock") or " " in ref:
        logger.warning(f"Invalid ref: {ref}")
        return False

    return len(ref.split("/")) >= 3


def validate_marker(marker: str) -> bool:
    """
    Validate a comment category marker.

    Markers are matched as substrings of comment bodies, so they must be
    non-empty, single-line and long enough not to match unrelated comments.
    """
    if not marker or not isinstance(marker, str):
        return False
    if "\n" in marker:
        logger.warning(f"Marker must be a single line: {marker!r}")
        return False
    return len(marker.strip()) >= 8


def validate_artifact_name(name: str) -> bool:
    """Validate an artifact name: letters, digits, dot, dash and underscore."""
    if not name or not isinstance(name, str):
        return False
    return bool(_ARTIFACT_NAME.match(name))


def validate_retention_days(days) -> bool:
    """Retention must be a whole number of days between 1 and 90."""
    if isinstance(days, bool) or not isinstance(days, int):
        return False
    return 1 <= days <= 90


def validate_api_token(token: str) -> bool:
    """
    Check that a provider token is present and not the template placeholder.

    The token itself is opaque; only its presence is validated.
    """
    if not token or not isinstance(token, str):
        return False
    token = token.strip()
    if token == PLACEHOLDER_TOKEN:
        logger.warning("API token is still the placeholder value from .env.example")
        return False
    return len(token) > 0


def validate_working_dir(path: str) -> bool:
    """The working directory must exist and be a directory."""
    if not path:
        return False
    return Path(path).is_dir()
