"""Per-repository indexing pipeline."""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from github import GithubException

from ..crawler.git import GitError, GitRepository, VCSType, vcs_label
from ..crawler.github_client import GitHubClient
from ..crawler.models import Commit, RepoInfo
from ..crawler.repo_manager import RepoManager
from ..errors import CrawlError
from ..extractors.go import GoPackageInspector
from ..store.models import About, Ref, RepositoryRecord, Tickets
from .refs import RefSpec, select_references
from .status import HISTORY_DEPTH, classify_activity, status_label
from .versions import TagDialect
from .walker import PackageWalker

logger = logging.getLogger(__name__)

DEFAULT_FORGE_HOST = "github.com"
DISTRIBUTION_HANDLE = "github.com/golang/go"

README_PATTERN = re.compile(r"^README\.(md|txt)$")


def normalize_handle(value: str) -> str:
    """Turn a URL, handle or ``owner/name`` into a handle.

    >>> normalize_handle("https://github.com/stretchr/testify")
    'github.com/stretchr/testify'
    """
    handle = re.sub(r"^https?://", "", value.strip()).rstrip("/")
    handle = handle.removesuffix(".git")
    if handle.count("/") == 1:
        handle = f"{DEFAULT_FORGE_HOST}/{handle}"
    return handle


def handle_from_url(html_url: str) -> str:
    return re.sub(r"^https?://", "", html_url)


def find_readme(path: Path) -> About | None:
    """Return the first README.md or README.txt at the worktree root."""
    for entry in sorted(path.iterdir(), key=lambda p: p.name):
        m = README_PATTERN.match(entry.name)
        if not m or not entry.is_file():
            continue
        content_type = "text/markdown" if m.group(1) == "md" else "text/plain"
        return About(
            content=entry.read_text(encoding="utf-8", errors="replace"),
            content_type=content_type,
        )
    return None


class RepositoryIndexer:
    """Crawl one repository at a time into a RepositoryRecord.

    The indexer exclusively owns the worktree of the repository it is
    crawling for the duration of `index`.
    """

    def __init__(
        self,
        forge: GitHubClient,
        repo_manager: RepoManager,
        inspector: GoPackageInspector | None = None,
        skip_list: Iterable[str] = (),
        count_tickets: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        self.forge = forge
        self.repo_manager = repo_manager
        self.inspector = inspector or GoPackageInspector()
        # GitHub handles are case-insensitive
        self.skip_list = frozenset(normalize_handle(h).lower() for h in skip_list)
        self.count_tickets = count_tickets
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def index(self, name: str) -> RepositoryRecord | None:
        """Index a repository, or return None if it is on the skip list.

        Raises CrawlError if anything about the crawl fails.
        """
        handle = normalize_handle(name)
        if handle.lower() in self.skip_list:
            logger.info("%s is on the skip list", handle)
            return None

        host, _, full_name = handle.partition("/")
        if not host or full_name.count("/") != 1 or "" in full_name.split("/"):
            raise CrawlError(handle, "not a repository handle")

        logger.info("Indexing %s", handle)
        try:
            return self._index(handle, full_name)
        except (GitError, OSError) as e:
            raise CrawlError(handle, str(e)) from e
        except GithubException as e:
            raise CrawlError(handle, f"GitHub API error: {e}") from e

    def _index(self, handle: str, full_name: str) -> RepositoryRecord:
        info = self.forge.get_repository(full_name)
        handle = handle_from_url(info.html_url)
        dialect = TagDialect.DISTRIBUTION if handle == DISTRIBUTION_HANDLE else TagDialect.GENERIC

        clone = self.repo_manager.open(handle, info)
        now = self.clock()

        status = classify_activity(info, self._default_branch_history(clone, info), now)
        logger.info("  status = %s", status_label(status))

        about = find_readme(clone.path)

        if self.count_tickets:
            issues, prs = self.forge.get_issues_and_pull_requests(info)
        else:
            issues, prs = Tickets(), Tickets()

        selected = select_references(clone.remote_branches(), clone.tags(), dialect)
        refs = [self._index_ref(clone, info, handle, dialect, target) for target in selected]

        return RepositoryRecord(
            id=handle,
            name=info.name,
            full_name=info.full_name,
            vcs=vcs_label(VCSType.GIT),
            description=info.description,
            primary_url=info.html_url,
            issues=issues,
            pull_requests=prs,
            owner=info.owner,
            created=info.created_at,
            last_updated=info.pushed_at,
            last_crawled=now,
            stars=info.stars,
            forks=info.forks,
            status=status_label(status),
            about=about,
            is_fork=info.fork,
            refs=refs,
        )

    def _default_branch_history(self, clone: GitRepository, info: RepoInfo) -> list[Commit]:
        head = clone.get_branch_commit(info.default_branch)
        return [head, *clone.commits_before(head.id, HISTORY_DEPTH)]

    def _index_ref(
        self,
        clone: GitRepository,
        info: RepoInfo,
        handle: str,
        dialect: TagDialect,
        target: RefSpec,
    ) -> Ref:
        logger.info("   ref = %s", target.name)

        if target.is_branch:
            clone.fetch_branch(target.name)
        clone.checkout(target.checkout_name)
        commit = clone.get_commit("HEAD")

        walker = PackageWalker(clone.path, handle, dialect, self.inspector)
        return Ref(
            name=target.name,
            ref_type=target.ref_type,
            is_default_branch=target.is_branch and target.name == info.default_branch,
            last_seen_commit=commit.id,
            last_updated=commit.author_time,
            packages=walker.walk(),
        )
