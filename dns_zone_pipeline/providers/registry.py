"""
Collaborator registry - picks real or mock collaborators from configuration.

This module provides a single place where the pipeline's external
collaborators are constructed, so the orchestration code only ever sees the
abstract interfaces.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from .artifact_store import LocalArtifactStore
from .base_provider import ArtifactStore, CommentAPI, ProvisioningTool, Scanner
from .checkov import CheckovScanner
from .github import GitHubCommentClient
from .mock_provider import MockCommentAPI, MockScanner, MockTerraform
from .terraform import TerraformCLI

logger = logging.getLogger(__name__)


@dataclass
class Collaborators:
    """The external systems one run talks to."""

    tool: ProvisioningTool
    scanner: Scanner
    store: ArtifactStore
    comments: Optional[CommentAPI] = None


def build_tool(config: Dict, tool_env: Optional[Mapping[str, str]]) -> ProvisioningTool:
    provider_name = config.get("tools", {}).get("provider", "cli")
    terraform_config = config.get("terraform", {})

    if provider_name == "cli":
        return TerraformCLI(terraform_config, env=tool_env)
    elif provider_name == "mock":
        return MockTerraform(working_dir=terraform_config.get("working_dir", "."))
    else:
        logger.warning(f"Unknown tool provider '{provider_name}', using mock provider")
        return MockTerraform(working_dir=terraform_config.get("working_dir", "."))


def build_scanner(config: Dict) -> Scanner:
    provider_name = config.get("tools", {}).get("provider", "cli")
    if provider_name == "cli":
        working_dir = config.get("terraform", {}).get("working_dir", ".")
        return CheckovScanner(config.get("security", {}), working_dir=working_dir)
    return MockScanner()


def _build_comments(
    config: Dict, repository: str, env: Mapping[str, str]
) -> Optional[CommentAPI]:
    notifier_config = config.get("notifier", {})
    provider_name = notifier_config.get("provider", "github")

    if provider_name == "mock":
        return MockCommentAPI()
    if provider_name != "github":
        logger.warning(f"Unknown notifier provider '{provider_name}', comments disabled")
        return None

    token = env.get(notifier_config.get("token_env", "GITHUB_TOKEN"), "")
    if not token or not repository:
        logger.warning("No GitHub token or repository available, comments disabled")
        return None
    return GitHubCommentClient(
        token=token,
        repository=repository,
        api_url=notifier_config.get("api_url", "https://api.github.com"),
    )


def build_collaborators(
    config: Dict,
    tool_env: Optional[Mapping[str, str]] = None,
    repository: str = "",
    env: Optional[Mapping[str, str]] = None,
) -> Collaborators:
    """Construct the collaborators described by config."""
    env = os.environ if env is None else env
    artifacts = config.get("artifacts", {})
    if artifacts.get("provider", "local") != "local":
        logger.warning(
            f"Unknown artifact provider '{artifacts.get('provider')}', using local store"
        )

    return Collaborators(
        tool=build_tool(config, tool_env),
        scanner=build_scanner(config),
        store=LocalArtifactStore(artifacts.get("root", ".pipeline/artifacts")),
        comments=_build_comments(config, repository, env),
    )
