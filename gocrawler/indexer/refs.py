"""Selection and ordering of the refs to index."""

import logging
from dataclasses import dataclass

from .versions import TagDialect, parse_tag

logger = logging.getLogger(__name__)

# Caps crawl cost per repository.
MAX_TAGS = 3


@dataclass(frozen=True)
class RefSpec:
    """A branch or tag chosen for checkout."""
    name: str
    is_branch: bool

    @property
    def ref_type(self) -> str:
        return "branch" if self.is_branch else "tag"

    @property
    def checkout_name(self) -> str:
        """The name handed to ``git checkout``."""
        return f"origin/{self.name}" if self.is_branch else self.name


def select_references(
    branches: list[str],
    tags: list[str],
    dialect: TagDialect = TagDialect.GENERIC,
    max_tags: int = MAX_TAGS,
) -> list[RefSpec]:
    """Choose which refs to index and the order to check them out in.

    Every remote branch is kept in enumeration order. Tags that parse as
    versions are sorted ascending and only the lowest ``max_tags`` are
    kept. Neighbouring versions share most of their tree, so walking them
    in order keeps each checkout small.
    """
    refs = [RefSpec(name=b, is_branch=True) for b in branches if b != "HEAD"]

    versioned = []
    for tag in tags:
        version = parse_tag(tag, dialect)
        if version is None:
            continue
        versioned.append((version, tag))

    # stable sort keeps enumeration order among equal versions (v1.0 / 1.0.0)
    versioned.sort(key=lambda vt: vt[0])
    for _, tag in versioned[:max_tags]:
        refs.append(RefSpec(name=tag, is_branch=False))

    logger.debug(
        "selected %d branches and %d of %d version tags",
        len(refs) - min(len(versioned), max_tags),
        min(len(versioned), max_tags),
        len(versioned),
    )
    return refs
