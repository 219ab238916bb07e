"""Catalog documents and output generation."""

from .models import About, Package, Ref, RepositoryRecord, Tickets
from .output import OutputGenerator

__all__ = ["About", "Package", "Ref", "RepositoryRecord", "Tickets", "OutputGenerator"]
