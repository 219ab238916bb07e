"""Shared test fixtures."""

import textwrap
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gocrawler.crawler.models import Commit, RepoInfo

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_repo_info(**overrides) -> RepoInfo:
    """A RepoInfo for github.com/acme/widget with sensible defaults."""
    fields = {
        "id": 1,
        "name": "widget",
        "full_name": "acme/widget",
        "owner": "acme",
        "description": "Widgets for Go",
        "default_branch": "master",
        "html_url": "https://github.com/acme/widget",
        "clone_url": "https://github.com/acme/widget.git",
        "stars": 42,
        "forks": 3,
        "fork": False,
        "created_at": NOW - timedelta(days=400),
        "pushed_at": NOW - timedelta(days=1),
    }
    fields.update(overrides)
    return RepoInfo(**fields)


def commit(sha: str, when: datetime) -> Commit:
    return Commit(id=sha, author_time=when)


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Write `path -> contents` entries below root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return root


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def repo_info():
    return make_repo_info()


@pytest.fixture
def checkout(tmp_path):
    """An empty worktree rooted where a clone of acme/widget would live."""
    root = tmp_path / "repos" / "github.com" / "acme" / "widget"
    root.mkdir(parents=True)
    return root
