"""GoCrawler - index Go repositories for a package search catalog."""

__version__ = "0.1.0"
