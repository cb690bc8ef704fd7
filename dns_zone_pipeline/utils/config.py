"""
Configuration loading and logging setup.

The YAML config is merged over built-in defaults. The provider credential is
read once per run (from the environment, optionally populated from a .env
file) and handed to the tool adapters explicitly.
"""

import copy
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from ..core.errors import ConfigurationError
from .validators import (
    validate_api_token,
    validate_artifact_name,
    validate_marker,
    validate_retention_days,
)

logger = logging.getLogger(__name__)

TOKEN_VARIABLE = "CLOUDFLARE_API_TOKEN"
TF_TOKEN_VARIABLE = "TF_VAR_cloudflare_api_token"


def get_default_config() -> Dict:
    """Return default configuration."""
    return {
        "terraform": {
            "binary": "terraform",
            "version": "1.12.2",
            "working_dir": ".",
            "plan_file": "tfplan",
        },
        "artifacts": {
            "provider": "local",
            "root": ".pipeline/artifacts",
            "name": "terraform-plan",
            "retention_days": 1,
        },
        "security": {
            "binary": "checkov",
            "framework": "terraform",
            "config_file": "",
        },
        "notifier": {
            "provider": "github",
            "api_url": "https://api.github.com",
            "token_env": "GITHUB_TOKEN",
            "bot_login": "",
            "markers": {
                "plan": "Terraform Plan Results",
                "security": "Security Scan Results",
            },
        },
        "gate": {"environment": "production", "mode": "environment"},
        "concurrency": {"state_dir": ".pipeline/runs"},
        "pipeline": {"max_workers": 4},
        "summary": {"file": ""},
        "tools": {"provider": "cli"},
        "logging": {"level": "INFO", "file": "dns_zone_pipeline.log"},
    }


def _deep_merge(base: Dict, overrides: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str]) -> Dict:
    """Load configuration from YAML file, merged over defaults."""
    defaults = get_default_config()
    if not config_path:
        return defaults

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Configuration loaded from {config_path}")
    except FileNotFoundError:
        logger.warning(f"Config file {config_path} not found, using defaults")
        return defaults
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing config file {config_path}: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    merged = _deep_merge(defaults, config)
    check_config(merged)
    return merged


def check_config(config: Dict) -> None:
    """Raise ConfigurationError for settings that would break a run later."""
    artifacts = config["artifacts"]
    if not validate_artifact_name(artifacts["name"]):
        raise ConfigurationError(f"Invalid artifact name '{artifacts['name']}'")
    if not validate_retention_days(artifacts["retention_days"]):
        raise ConfigurationError(
            f"Artifact retention must be 1-90 days, got {artifacts['retention_days']!r}"
        )
    for category, marker in config["notifier"]["markers"].items():
        if not validate_marker(marker):
            raise ConfigurationError(f"Invalid comment marker for {category}: {marker!r}")


def config_logger(config: Dict):
    """Configure logging."""
    logging_config = config.get("logging", None)
    if logging_config:
        log_level = logging_config.get("level", "INFO")
        log_file = logging_config.get("file")

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            handlers.insert(0, logging.FileHandler(log_file))

        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=handlers,
        )
        return

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@dataclass(frozen=True)
class Credentials:
    """The provider bearer token, resolved once per run."""

    api_token: str

    def tool_environment(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for a provisioning tool child process.

        The token is exported under the provider's native variable and under
        the Terraform input variable name; the parent process is not touched.
        """
        env = dict(os.environ if base is None else base)
        env[TOKEN_VARIABLE] = self.api_token
        env[TF_TOKEN_VARIABLE] = self.api_token
        return env

    @property
    def configured(self) -> bool:
        return validate_api_token(self.api_token)


def load_credentials(
    env_file: Optional[str] = ".env", env: Optional[Mapping[str, str]] = None
) -> Credentials:
    """
    Resolve the provider token.

    Process environment wins over the .env file so CI secrets are never
    shadowed by a stale local file.
    """
    env = os.environ if env is None else env
    token = env.get(TOKEN_VARIABLE) or env.get(TF_TOKEN_VARIABLE) or ""

    if not token and env_file and Path(env_file).exists():
        values = dotenv_values(env_file)
        token = values.get(TOKEN_VARIABLE) or ""
        if token:
            logger.debug(f"Provider token loaded from {env_file}")

    return Credentials(api_token=token.strip())
