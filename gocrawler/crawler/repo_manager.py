"""Repository cloning and management."""

import logging
from pathlib import Path

from .git import GitRepository
from .models import RepoInfo

logger = logging.getLogger(__name__)


class RepoManager:
    """Manages local repository clones.

    Each repository handle owns exactly one worktree under
    ``<cache_root>/repos/<handle>``. Worktrees are reused across crawls
    and never removed here.
    """

    def __init__(self, cache_root: Path | str):
        self.cache_root = Path(cache_root)
        self.base_path = self.cache_root / "repos"
        self.base_path.mkdir(parents=True, exist_ok=True)

    def get_repo_path(self, handle: str) -> Path:
        """Get local path for a repository handle."""
        return self.base_path / handle

    def open(self, handle: str, repo: RepoInfo) -> GitRepository:
        """Return an up to date worktree, cloning it first if needed."""
        local_path = self.get_repo_path(handle)

        if not local_path.exists():
            logger.info("%s does not exist at %s - cloning", handle, local_path)
            return GitRepository.clone(repo.clone_url, local_path)

        logger.info("%s exists at %s - fetching", handle, local_path)
        clone = GitRepository(local_path)
        clone.fetch_tags()
        return clone
