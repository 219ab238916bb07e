"""Repository crawler module."""

from .models import Commit, RepoInfo
from .git import GitError, GitRepository, VCSType, vcs_label
from .github_client import GitHubClient
from .repo_manager import RepoManager

__all__ = [
    "Commit",
    "RepoInfo",
    "GitError",
    "GitRepository",
    "VCSType",
    "vcs_label",
    "GitHubClient",
    "RepoManager",
]
