"""Exceptions shared across the crawler."""


class CrawlError(Exception):
    """A fatal failure while crawling a single repository.

    Raised for environmental problems (git, filesystem, forge API). The
    crawl of that repository is abandoned and no record is produced.
    """

    def __init__(self, handle: str, message: str):
        super().__init__(f"{handle}: {message}")
        self.handle = handle
        self.message = message
