"""Recursive discovery of Go packages in a checked-out worktree."""

import logging
from pathlib import Path

from ..extractors.go import BuildError, GoPackageInspector, NoGoError
from ..store.models import Package
from .versions import TagDialect

logger = logging.getLogger(__name__)

# Never descended into. "." guards against a self-referencing entry.
EXCLUDED_DIRS = {".", "internal", "vendor"}
VCS_DIRS = {".git", ".hg", ".svn", ".bzr"}

# The Go core repository keeps its library sources under src/, and its
# testdata directories hold Go code that is not meant to be built.
DISTRIBUTION_SOURCE_DIR = "src"
DISTRIBUTION_EXCLUDED_DIRS = {"testdata"}
DISTRIBUTION_IMPORT_PREFIXES = ("src/pkg/", "src/")


def import_path_for(root: Path, directory: Path, handle: str, dialect: TagDialect) -> str:
    """Derive a package's import path from its directory."""
    rel = directory.relative_to(root).as_posix()
    if dialect is TagDialect.DISTRIBUTION:
        rel_slash = f"{rel}/"
        for prefix in DISTRIBUTION_IMPORT_PREFIXES:
            if rel_slash.startswith(prefix):
                return rel_slash[len(prefix):].rstrip("/")
        return rel
    if rel == ".":
        return handle
    return f"{handle}/{rel}"


class PackageWalker:
    """Walk a worktree and resolve at most one package per directory."""

    def __init__(
        self,
        root: Path | str,
        handle: str,
        dialect: TagDialect = TagDialect.GENERIC,
        inspector: GoPackageInspector | None = None,
    ):
        self.root = Path(root)
        self.handle = handle
        self.dialect = dialect
        self.inspector = inspector or GoPackageInspector()

    @property
    def is_distribution(self) -> bool:
        return self.dialect is TagDialect.DISTRIBUTION

    def walk(self) -> list[Package]:
        """Return every package below the root, deepest directories first."""
        return self._walk(self.root)

    def _should_descend(self, path: Path) -> bool:
        name = path.name
        if name in EXCLUDED_DIRS or name in VCS_DIRS:
            return False
        if self.is_distribution:
            parts = path.relative_to(self.root).parts
            if not parts or parts[0] != DISTRIBUTION_SOURCE_DIR:
                return False
            if name in DISTRIBUTION_EXCLUDED_DIRS:
                return False
        return True

    def _in_scope(self, directory: Path) -> bool:
        if not self.is_distribution:
            return True
        parts = directory.relative_to(self.root).parts
        return bool(parts) and parts[0] == DISTRIBUTION_SOURCE_DIR

    def _walk(self, directory: Path) -> list[Package]:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)

        pkg: Package | None = None
        resolved = False
        pkgs: list[Package] = []

        for entry in entries:
            if entry.is_dir() and not entry.is_symlink():
                if self._should_descend(entry):
                    pkgs.extend(self._walk(entry))
                continue

            # The first Go file resolves the whole directory.
            if resolved or not self.inspector.is_source_file(entry.name):
                continue
            if not self._in_scope(directory):
                continue
            resolved = True
            pkg = self.package_for_dir(directory)

        if pkg is not None:
            logger.info("      package = %s", pkg.import_path)
            pkgs.append(pkg)
        return pkgs

    def package_for_dir(self, directory: Path) -> Package | None:
        """Resolve one directory, turning build failures into error stubs."""
        import_path = import_path_for(self.root, directory, self.handle, self.dialect)

        try:
            bpkg = self.inspector.inspect(directory)
        except NoGoError:
            # e.g. the only file carries a "+build ignore" constraint
            return None
        except BuildError as e:
            logger.warning("%s does not build: %s", import_path, e)
            return Package(import_path=import_path, errors=[str(e) or type(e).__name__])

        return Package(
            name=bpkg.name,
            import_path=import_path,
            synopsis=bpkg.doc,
            is_command=bpkg.is_command,
            files=bpkg.go_files,
            test_files=bpkg.test_go_files,
            xtest_files=bpkg.xtest_go_files,
            imports=bpkg.imports,
            test_imports=bpkg.test_imports,
            xtest_imports=bpkg.xtest_imports,
        )
