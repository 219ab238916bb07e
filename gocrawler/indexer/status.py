"""Repository activity classification."""

from datetime import datetime, timedelta
from enum import Enum

from ..crawler.models import Commit, RepoInfo

# A repository with no commits within the last 2 years will be considered
# inactive, unless an active repository imports it.
NO_RECENT_COMMITS_AFTER = timedelta(days=2 * 365)

QUICK_FORK_WINDOW = timedelta(days=7)

# head plus this many first-parent ancestors are inspected
HISTORY_DEPTH = 2


class ActivityStatus(Enum):
    """How alive a repository is."""

    ACTIVE = 0
    DEAD_END_FORK = 1  # fork never pushed to after creation
    QUICK_FORK = 2  # fork whose recent commits all fall within a week of creation
    NO_RECENT_COMMITS = 3

    # Never assigned here. Derived downstream from NO_RECENT_COMMITS plus
    # the number of importers recorded in the catalog.
    INACTIVE = 4


STATUS_LABELS = {
    ActivityStatus.ACTIVE: "active",
    ActivityStatus.DEAD_END_FORK: "dead-end-fork",
    ActivityStatus.QUICK_FORK: "quick-fork",
    ActivityStatus.NO_RECENT_COMMITS: "no-recent-commits",
    ActivityStatus.INACTIVE: "inactive",
}


def status_label(status: ActivityStatus) -> str:
    """Return the catalog label for a status."""
    try:
        return STATUS_LABELS[status]
    except KeyError:
        raise ValueError(f"Invalid activity status: {status!r}") from None


def is_quick_fork(repo: RepoInfo, history: list[Commit], now: datetime) -> bool:
    """Report whether a fork was abandoned within a week of being created.

    `history` is the head commit followed by its first-parent ancestors,
    newest first. Timestamps within it are not assumed to be monotonic.
    """
    one_week_old = repo.created_at + QUICK_FORK_WINDOW
    if one_week_old > now:
        return False  # too young to judge

    for commit in history:
        if commit.author_time > one_week_old:
            return False
        if commit.author_time < repo.created_at:
            break  # inherited from the parent repository
    return True


def classify_activity(repo: RepoInfo, history: list[Commit], now: datetime) -> ActivityStatus:
    """Assign an activity status from metadata and recent default-branch history.

    `history` must start with the default branch head.
    """
    if not history:
        raise ValueError(f"{repo.full_name}: no head commit to classify")

    head = history[0]
    if now - head.author_time > NO_RECENT_COMMITS_AFTER:
        return ActivityStatus.NO_RECENT_COMMITS

    if repo.fork:
        if repo.pushed_at < repo.created_at:
            return ActivityStatus.DEAD_END_FORK
        if is_quick_fork(repo, history, now):
            return ActivityStatus.QUICK_FORK

    return ActivityStatus.ACTIVE
