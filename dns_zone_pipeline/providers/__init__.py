"""
External collaborator adapters.

This package contains the provisioning tool, security scanner, artifact store
and pull request comment adapters, plus in-memory mocks of each.
"""

from .artifact_store import LocalArtifactStore
from .base_provider import ArtifactStore, Comment, CommentAPI, ProvisioningTool, Scanner
from .checkov import CheckovScanner
from .github import GitHubCommentClient
from .mock_provider import MockCommentAPI, MockScanner, MockTerraform
from .registry import Collaborators, build_collaborators
from .terraform import TerraformCLI

__all__ = [
    "ArtifactStore",
    "CheckovScanner",
    "Collaborators",
    "Comment",
    "CommentAPI",
    "GitHubCommentClient",
    "LocalArtifactStore",
    "MockCommentAPI",
    "MockScanner",
    "MockTerraform",
    "ProvisioningTool",
    "Scanner",
    "TerraformCLI",
    "build_collaborators",
]
