"""Tests for the per-repository indexing pipeline."""

import shutil
from datetime import timedelta
from pathlib import Path

import pytest
from github import UnknownObjectException

from conftest import NOW, commit, make_repo_info, write_tree
from gocrawler.crawler.git import GitError
from gocrawler.errors import CrawlError
from gocrawler.indexer.repository import (
    RepositoryIndexer,
    find_readme,
    normalize_handle,
)
from gocrawler.store.models import Tickets


class FakeClone:
    """Stands in for GitRepository; each checkout rewrites the worktree."""

    def __init__(self, path, branches, tags, trees, commits, history=()):
        self.path = path
        self.branches = branches
        self.tags_list = tags
        self.trees = trees
        self.commits = commits
        self.history = list(history)
        self.calls: list[tuple[str, str]] = []
        self.current = None
        self.fail_checkout: str | None = None

    def fetch_branch(self, name):
        self.calls.append(("fetch", name))

    def checkout(self, name):
        self.calls.append(("checkout", name))
        if name == self.fail_checkout:
            raise GitError(["checkout", name], 1, "error: pathspec did not match")
        for child in self.path.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        write_tree(self.path, self.trees.get(name, {}))
        self.current = name

    def remote_branches(self):
        return list(self.branches)

    def tags(self):
        return list(self.tags_list)

    def get_commit(self, rev):
        assert rev == "HEAD"
        return self.commits[self.current]

    def get_branch_commit(self, branch):
        return self.commits[f"origin/{branch}"]

    def commits_before(self, rev, limit):
        return self.history[:limit]


class FakeRepoManager:
    def __init__(self, clone):
        self.clone = clone
        self.opened: list[str] = []

    def open(self, handle, repo):
        self.opened.append(handle)
        return self.clone


class FakeForge:
    def __init__(self, info, error=None):
        self.info = info
        self.error = error
        self.requested: list[str] = []
        self.ticket_calls = 0

    def get_repository(self, full_name):
        self.requested.append(full_name)
        if self.error:
            raise self.error
        return self.info

    def get_issues_and_pull_requests(self, repo):
        self.ticket_calls += 1
        return (
            Tickets(url=f"{repo.html_url}/issues", open=2, closed=5),
            Tickets(url=f"{repo.html_url}/pulls", open=1, closed=9),
        )


@pytest.fixture
def clone(checkout):
    write_tree(checkout, {"README.md": "# Widget\n"})
    return FakeClone(
        path=checkout,
        branches=["master", "dev"],
        tags=["v2.0.0", "v1.0.0", "nightly", "v1.2.0", "v1.1.0"],
        trees={
            "origin/master": {"widget.go": "package widget\n", "cmd/w/main.go": "package main\n"},
            "origin/dev": {"widget.go": "package widget\n", "extra/extra.go": "package extra\n"},
            "v1.0.0": {"widget.go": "package widget\n"},
            "v1.1.0": {"widget.go": "package widget\n"},
            "v1.2.0": {"widget.go": "package widget\n", "broken/b.go": "nope\n"},
        },
        commits={
            "origin/master": commit("m" * 40, NOW - timedelta(days=2)),
            "origin/dev": commit("d" * 40, NOW - timedelta(days=5)),
            "v1.0.0": commit("1" * 40, NOW - timedelta(days=300)),
            "v1.1.0": commit("2" * 40, NOW - timedelta(days=200)),
            "v1.2.0": commit("3" * 40, NOW - timedelta(days=100)),
        },
        history=[commit("p" * 40, NOW - timedelta(days=3))],
    )


def make_indexer(forge, clone, **kwargs):
    manager = FakeRepoManager(clone)
    indexer = RepositoryIndexer(forge=forge, repo_manager=manager, clock=lambda: NOW, **kwargs)
    return indexer, manager


def test_index_builds_full_record(clone):
    info = make_repo_info()
    indexer, manager = make_indexer(FakeForge(info), clone)

    record = indexer.index("https://github.com/acme/widget")

    assert manager.opened == ["github.com/acme/widget"]
    assert record.id == "github.com/acme/widget"
    assert record.vcs == "Git"
    assert record.status == "active"
    assert record.owner == "acme"
    assert record.stars == 42
    assert record.last_crawled == NOW
    assert record.about.content == "# Widget\n"
    assert record.about.content_type == "text/markdown"
    assert record.issues == Tickets()

    assert [r.name for r in record.refs] == ["master", "dev", "v1.0.0", "v1.1.0", "v1.2.0"]
    assert [r.ref_type for r in record.refs] == ["branch", "branch", "tag", "tag", "tag"]
    assert [r.is_default_branch for r in record.refs] == [True, False, False, False, False]

    master = record.refs[0]
    assert master.last_seen_commit == "m" * 40
    assert master.last_updated == NOW - timedelta(days=2)
    assert [p.import_path for p in master.packages] == [
        "github.com/acme/widget/cmd/w",
        "github.com/acme/widget",
    ]

    broken = [p for p in record.refs[4].packages if p.errors]
    assert [p.import_path for p in broken] == ["github.com/acme/widget/broken"]


def test_branches_are_fetched_before_checkout(clone):
    indexer, _ = make_indexer(FakeForge(make_repo_info()), clone)

    indexer.index("acme/widget")

    assert clone.calls == [
        ("fetch", "master"),
        ("checkout", "origin/master"),
        ("fetch", "dev"),
        ("checkout", "origin/dev"),
        ("checkout", "v1.0.0"),
        ("checkout", "v1.1.0"),
        ("checkout", "v1.2.0"),
    ]


def test_skip_list_short_circuits_before_any_access(clone):
    forge = FakeForge(make_repo_info())
    indexer, manager = make_indexer(forge, clone, skip_list=["acme/widget"])

    assert indexer.index("https://github.com/acme/widget") is None
    assert forge.requested == []
    assert manager.opened == []
    assert clone.calls == []


def test_skip_list_ignores_case(clone):
    forge = FakeForge(make_repo_info())
    indexer, manager = make_indexer(forge, clone, skip_list=["github.com/acme/widget"])

    assert indexer.index("Acme/Widget") is None
    assert forge.requested == []
    assert manager.opened == []


@pytest.mark.parametrize("name", ["widget", "", "acme//", "github.com/acme/widget/extra"])
def test_malformed_handle_is_a_crawl_error(clone, name):
    forge = FakeForge(make_repo_info())
    indexer, manager = make_indexer(forge, clone)

    with pytest.raises(CrawlError, match="not a repository handle"):
        indexer.index(name)
    assert forge.requested == []
    assert manager.opened == []


def test_head_commit_failure_aborts_repository(clone):
    def fail(branch):
        raise GitError(["log", "-1", f"refs/remotes/origin/{branch}"], 128, "fatal: bad revision")

    clone.get_branch_commit = fail
    indexer, _ = make_indexer(FakeForge(make_repo_info()), clone)

    with pytest.raises(CrawlError, match="bad revision") as excinfo:
        indexer.index("acme/widget")

    assert isinstance(excinfo.value.__cause__, GitError)
    assert clone.calls == []


def test_history_failure_aborts_repository(clone):
    def fail(rev, limit):
        raise GitError(["log", "--first-parent", rev], 128, "fatal: bad object")

    clone.commits_before = fail
    indexer, _ = make_indexer(FakeForge(make_repo_info()), clone)

    with pytest.raises(CrawlError, match="bad object") as excinfo:
        indexer.index("acme/widget")

    assert isinstance(excinfo.value.__cause__, GitError)
    assert clone.calls == []


def test_unreadable_directory_aborts_repository(clone, monkeypatch):
    clone.trees["origin/master"] = {"widget.go": "package widget\n", "locked/l.go": "package locked\n"}
    iterdir = Path.iterdir

    def guarded_iterdir(self):
        if self.name == "locked":
            raise PermissionError(13, "Permission denied", str(self))
        return iterdir(self)

    monkeypatch.setattr(Path, "iterdir", guarded_iterdir)
    indexer, _ = make_indexer(FakeForge(make_repo_info()), clone)

    with pytest.raises(CrawlError, match="Permission denied") as excinfo:
        indexer.index("acme/widget")

    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert clone.calls == [("fetch", "master"), ("checkout", "origin/master")]


def test_checkout_failure_aborts_repository(clone):
    clone.fail_checkout = "v1.1.0"
    indexer, _ = make_indexer(FakeForge(make_repo_info()), clone)

    with pytest.raises(CrawlError) as excinfo:
        indexer.index("acme/widget")

    assert excinfo.value.handle == "github.com/acme/widget"
    assert "pathspec" in excinfo.value.message
    assert isinstance(excinfo.value.__cause__, GitError)


def test_forge_failure_aborts_repository(clone):
    error = UnknownObjectException(404, {"message": "Not Found"}, None)
    indexer, manager = make_indexer(FakeForge(make_repo_info(), error=error), clone)

    with pytest.raises(CrawlError, match="GitHub API error"):
        indexer.index("acme/widget")
    assert manager.opened == []


def test_tickets_are_counted_when_enabled(clone):
    forge = FakeForge(make_repo_info())
    indexer, _ = make_indexer(forge, clone, count_tickets=True)

    record = indexer.index("acme/widget")

    assert forge.ticket_calls == 1
    assert record.issues.open == 2
    assert record.pull_requests.closed == 9


def test_quick_fork_status(clone):
    created = NOW - timedelta(days=10)
    info = make_repo_info(fork=True, created_at=created, pushed_at=created + timedelta(hours=3))
    clone.commits["origin/master"] = commit("m" * 40, created + timedelta(hours=3))
    clone.history = [commit("p" * 40, created + timedelta(hours=1))]
    indexer, _ = make_indexer(FakeForge(info), clone)

    record = indexer.index("acme/widget")

    assert record.status == "quick-fork"
    assert record.is_fork


def test_distribution_repository_uses_go_tags(tmp_path):
    root = tmp_path / "go"
    root.mkdir()
    clone = FakeClone(
        path=root,
        branches=["master"],
        tags=["go1.10", "go1.2", "go1", "v1.0.0", "weekly.2011-01-01", "go1.9"],
        trees={
            "origin/master": {"src/fmt/print.go": "package fmt\n"},
            "go1": {"src/pkg/fmt/print.go": "package fmt\n"},
            "go1.2": {"src/pkg/fmt/print.go": "package fmt\n"},
            "go1.9": {"src/fmt/print.go": "package fmt\n"},
        },
        commits={
            name: commit(str(i) * 40, NOW - timedelta(days=i))
            for i, name in enumerate(["origin/master", "go1", "go1.2", "go1.9"], start=1)
        },
    )
    info = make_repo_info(
        name="go",
        full_name="golang/go",
        owner="golang",
        html_url="https://github.com/golang/go",
    )
    indexer, _ = make_indexer(FakeForge(info), clone)

    record = indexer.index("golang/go")

    assert [r.name for r in record.refs] == ["master", "go1", "go1.2", "go1.9"]
    assert all(r.packages[0].import_path == "fmt" for r in record.refs)


def test_normalize_handle():
    assert normalize_handle("https://github.com/acme/widget") == "github.com/acme/widget"
    assert normalize_handle("http://github.com/acme/widget/") == "github.com/acme/widget"
    assert normalize_handle("github.com/acme/widget.git") == "github.com/acme/widget"
    assert normalize_handle("acme/widget") == "github.com/acme/widget"


def test_find_readme(tmp_path):
    assert find_readme(tmp_path) is None

    write_tree(tmp_path, {"README.txt": "plain", "README.md": "markdown"})
    about = find_readme(tmp_path)
    assert about.content == "markdown"
    assert about.content_type == "text/markdown"


def test_find_readme_plain_text(tmp_path):
    write_tree(tmp_path, {"README": "no extension", "README.txt": "plain"})
    about = find_readme(tmp_path)
    assert about.content == "plain"
    assert about.content_type == "text/plain"
