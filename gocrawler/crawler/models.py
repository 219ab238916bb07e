"""Shared data models for repository crawlers."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RepoInfo:
    """Repository metadata from the forge API."""
    id: int
    name: str
    full_name: str
    owner: str
    description: str | None
    default_branch: str
    html_url: str
    clone_url: str
    stars: int
    forks: int
    fork: bool
    created_at: datetime
    pushed_at: datetime


@dataclass(frozen=True)
class Commit:
    """A single commit as seen by the indexer."""
    id: str
    author_time: datetime
