"""GitHub API client for repository metadata."""

import logging
from datetime import timezone

from github import Auth, Github, GithubException
from rich.console import Console

from ..store.models import Tickets
from .models import RepoInfo

console = Console()
logger = logging.getLogger(__name__)


class GitHubClient:
    """Client for interacting with GitHub API."""

    def __init__(self, token: str | None = None, gh: Github | None = None):
        if gh is not None:
            self.gh = gh
        elif token:
            self.gh = Github(auth=Auth.Token(token))
        else:
            self.gh = Github()

    def authenticate(self) -> bool:
        """Verify authentication and connection."""
        try:
            user = self.gh.get_user()
            console.print(f"[green]✓[/green] Connected to GitHub")
            console.print(f"  User: {user.login}")
            return True
        except GithubException as e:
            console.print(f"[red]✗[/red] Authentication failed: {e}")
            return False

    def get_repository(self, full_name: str) -> RepoInfo:
        """Fetch metadata for an ``owner/name`` repository.

        Raises GithubException when the repository cannot be read.
        """
        repo = self.gh.get_repo(full_name)
        return self._repo_to_info(repo)

    def _repo_to_info(self, repo) -> RepoInfo:
        """Convert a PyGithub repository object to RepoInfo."""
        created_at = repo.created_at
        pushed_at = repo.pushed_at or created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if pushed_at.tzinfo is None:
            pushed_at = pushed_at.replace(tzinfo=timezone.utc)

        return RepoInfo(
            id=repo.id,
            name=repo.name,
            full_name=repo.full_name,
            owner=repo.owner.login,
            description=repo.description,
            default_branch=repo.default_branch or "master",
            html_url=repo.html_url,
            clone_url=repo.clone_url,
            stars=repo.stargazers_count,
            forks=repo.forks_count,
            fork=bool(repo.fork),
            created_at=created_at,
            pushed_at=pushed_at,
        )

    def get_issues_and_pull_requests(self, repo: RepoInfo) -> tuple[Tickets, Tickets]:
        """Tally open and closed issues and pull requests."""
        logger.info("getting issues for %s", repo.full_name)

        issues = Tickets(url=f"{repo.html_url}/issues")
        prs = Tickets(url=f"{repo.html_url}/pulls")

        gh_repo = self.gh.get_repo(repo.full_name)
        for issue in gh_repo.get_issues(state="all"):
            bucket = prs if issue.pull_request is not None else issues
            if issue.closed_at is not None:
                bucket.closed += 1
            else:
                bucket.open += 1

        return issues, prs
