"""Catalog document models for indexed repositories."""

from datetime import datetime

from pydantic import BaseModel, Field


class Tickets(BaseModel):
    """Open/closed counts for issues or pull requests."""
    url: str = ""
    open: int = 0
    closed: int = 0


class About(BaseModel):
    """README contents of a repository."""
    content: str
    content_type: str = "text/plain"


class Package(BaseModel):
    """A Go package found in one directory of a checked-out ref.

    When the directory fails to build only `import_path` and `errors`
    are populated.
    """
    name: str = ""
    import_path: str
    synopsis: str = ""
    is_command: bool = False
    files: list[str] = Field(default_factory=list)
    test_files: list[str] = Field(default_factory=list)
    xtest_files: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    test_imports: list[str] = Field(default_factory=list)
    xtest_imports: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class Ref(BaseModel):
    """A branch or tag and the packages seen when it was checked out."""
    name: str
    ref_type: str = Field(..., description="branch or tag")
    is_default_branch: bool = False
    last_seen_commit: str
    last_updated: datetime
    packages: list[Package] = Field(default_factory=list)


class RepositoryRecord(BaseModel):
    """The catalog document for one crawled repository."""
    id: str = Field(..., description="Handle, e.g. github.com/owner/name")
    name: str
    full_name: str
    vcs: str
    description: str | None = None
    primary_url: str
    issues: Tickets = Field(default_factory=Tickets)
    pull_requests: Tickets = Field(default_factory=Tickets)
    owner: str
    created: datetime
    last_updated: datetime
    last_crawled: datetime
    stars: int = 0
    forks: int = 0
    status: str
    about: About | None = None
    is_fork: bool = False
    refs: list[Ref] = Field(default_factory=list)
