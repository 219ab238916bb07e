"""Language-specific package inspectors."""

from .go import BuildContext, BuildError, GoPackage, GoPackageInspector, NoGoError

__all__ = [
    "BuildContext",
    "BuildError",
    "GoPackage",
    "GoPackageInspector",
    "NoGoError",
]
