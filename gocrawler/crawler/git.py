"""Thin wrapper around the git command line."""

import logging
import subprocess
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from .models import Commit

logger = logging.getLogger(__name__)

REMOTE_BRANCH_PREFIX = "refs/remotes/origin/"

# sha, NUL, strict ISO 8601 author date
_COMMIT_FORMAT = "%H%x00%aI"


class VCSType(str, Enum):
    """Version control systems a repository may use."""

    GIT = "git"
    HG = "hg"
    SVN = "svn"
    BZR = "bzr"


VCS_LABELS = {
    VCSType.GIT: "Git",
    VCSType.HG: "Hg",
    VCSType.SVN: "SVN",
    VCSType.BZR: "Bzr",
}


def vcs_label(vcs: VCSType) -> str:
    """Return the catalog label for a VCS type."""
    try:
        return VCS_LABELS[vcs]
    except KeyError:
        raise ValueError(f"Invalid VCS type: {vcs!r}") from None


class GitError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str, cwd: Path | None = None):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        self.cwd = cwd
        command = " ".join(["git", *args])
        super().__init__(f"`{command}` failed with exit code {returncode}: {self.stderr}")


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run git and return stdout, raising GitError on failure."""
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        raise GitError(args, result.returncode, result.stderr, cwd)
    return result.stdout


def _parse_commit(line: str) -> Commit:
    sha, _, when = line.partition("\x00")
    author_time = datetime.fromisoformat(when.strip())
    if author_time.tzinfo is None:
        author_time = author_time.replace(tzinfo=timezone.utc)
    return Commit(id=sha.strip(), author_time=author_time.astimezone(timezone.utc))


class GitRepository:
    """A local git worktree.

    The worktree is mutated in place by `checkout`, so one instance must
    only ever be driven by a single caller at a time.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def clone(cls, url: str, path: Path | str) -> "GitRepository":
        """Clone `url` into `path` and return the new repository."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        _run_git(["clone", "--quiet", url, str(path)])
        return cls(path)

    def run(self, *args: str) -> str:
        """Run a git subcommand inside the worktree."""
        return _run_git(list(args), cwd=self.path)

    def fetch_tags(self) -> None:
        """Fetch all remote refs and tags."""
        self.run("fetch", "--quiet", "--tags")

    def fetch_branch(self, name: str) -> None:
        """Fetch a single branch from origin."""
        self.run("fetch", "--quiet", "origin", name)

    def checkout(self, name: str) -> None:
        """Check out any name git can resolve to a commit.

        Local modifications are discarded; the worktree belongs to the crawler.
        """
        self.run("checkout", "--quiet", "--force", name)

    def remote_branches(self) -> list[str]:
        """List branch names on origin, without the symbolic HEAD."""
        stdout = self.run("for-each-ref", "--format=%(refname)", REMOTE_BRANCH_PREFIX)

        branches = []
        for ref in stdout.splitlines():
            if not ref:
                continue
            branch = ref.removeprefix(REMOTE_BRANCH_PREFIX)
            if branch == "HEAD":
                continue
            branches.append(branch)
        return branches

    def tags(self) -> list[str]:
        """List all tag names."""
        stdout = self.run("tag", "--list")
        return [t for t in stdout.splitlines() if t]

    def get_commit(self, rev: str) -> Commit:
        """Resolve a revision to its commit."""
        stdout = self.run("log", "-1", f"--format={_COMMIT_FORMAT}", rev, "--")
        line = stdout.strip()
        if not line:
            raise GitError(["log", "-1", rev], 0, f"no commit found for {rev}", self.path)
        return _parse_commit(line)

    def get_branch_commit(self, branch: str) -> Commit:
        """Return the head commit of a remote branch."""
        return self.get_commit(f"{REMOTE_BRANCH_PREFIX}{branch}")

    def commits_before(self, rev: str, limit: int) -> list[Commit]:
        """Return up to `limit` first-parent ancestors of `rev`, newest first."""
        stdout = self.run(
            "log",
            "--first-parent",
            "--skip=1",
            f"--max-count={limit}",
            f"--format={_COMMIT_FORMAT}",
            rev,
            "--",
        )
        return [_parse_commit(line) for line in stdout.splitlines() if line.strip()]
