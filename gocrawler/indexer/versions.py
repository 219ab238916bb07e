"""Version parsing for release tags."""

import re
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering


class TagDialect(str, Enum):
    """Tag naming conventions."""

    GENERIC = "generic"  # v1.2.3 or 1.2.3
    DISTRIBUTION = "distribution"  # go1.2.3, used by the Go core repository


DISTRIBUTION_TAG_PREFIX = "go"

TAG_PATTERNS = {
    TagDialect.GENERIC: re.compile(r"^v?[0-9]+(?:\.[0-9]+)*$"),
    TagDialect.DISTRIBUTION: re.compile(rf"^{DISTRIBUTION_TAG_PREFIX}[0-9]+(?:\.[0-9]+)*$"),
}


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A dotted numeric version.

    Comparison is component-wise; the shorter sequence is padded with
    zeros, so ``1.2`` == ``1.2.0``.
    """
    parts: tuple[int, ...]

    def _padded(self, other: "Version") -> tuple[tuple[int, ...], tuple[int, ...]]:
        width = max(len(self.parts), len(other.parts))
        return (
            self.parts + (0,) * (width - len(self.parts)),
            other.parts + (0,) * (width - len(other.parts)),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine == theirs

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        mine, theirs = self._padded(other)
        return mine < theirs

    def __hash__(self) -> int:
        parts = list(self.parts)
        while parts and parts[-1] == 0:
            parts.pop()
        return hash(tuple(parts))

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)


def parse_tag(tag: str, dialect: TagDialect = TagDialect.GENERIC) -> Version | None:
    """Parse a tag into a Version.

    Returns None when the tag does not match the dialect's pattern; such
    tags are simply not versions.
    """
    if not TAG_PATTERNS[dialect].match(tag):
        return None

    if dialect is TagDialect.DISTRIBUTION:
        name = tag[len(DISTRIBUTION_TAG_PREFIX):]
    else:
        name = tag.removeprefix("v")

    return Version(tuple(int(p) for p in name.split(".")))
