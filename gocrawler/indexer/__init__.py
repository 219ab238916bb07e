"""Repository classification and package discovery."""

from .refs import MAX_TAGS, RefSpec, select_references
from .repository import RepositoryIndexer, normalize_handle
from .status import ActivityStatus, classify_activity, is_quick_fork, status_label
from .versions import TagDialect, Version, parse_tag
from .walker import PackageWalker, import_path_for

__all__ = [
    "MAX_TAGS",
    "RefSpec",
    "select_references",
    "RepositoryIndexer",
    "normalize_handle",
    "ActivityStatus",
    "classify_activity",
    "is_quick_fork",
    "status_label",
    "TagDialect",
    "Version",
    "parse_tag",
    "PackageWalker",
    "import_path_for",
]
