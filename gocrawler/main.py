"""Main entry point for GoCrawler."""

import argparse
import logging
import os
from pathlib import Path

import yaml
from rich.console import Console
from rich.logging import RichHandler

from .crawler.github_client import GitHubClient
from .crawler.repo_manager import RepoManager
from .errors import CrawlError
from .indexer.repository import RepositoryIndexer
from .store.models import RepositoryRecord
from .store.output import OutputGenerator

console = Console()


def load_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        console.print(f"[red]Error:[/red] Config file not found: {config_path}")
        console.print("Copy config/config.example.yaml to config/config.yaml.")
        raise SystemExit(1)

    return yaml.safe_load(config_path.read_text()) or {}


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_indexer(config: dict) -> RepositoryIndexer:
    """Wire up the indexer from configuration."""
    gh_config = config.get("github", {}) or {}
    token = gh_config.get("token") or os.environ.get("GITHUB_TOKEN")
    client = GitHubClient(token=token)
    if not token:
        console.print("[yellow]Warning:[/yellow] no GitHub token, API rate limits will be low")
    elif not client.authenticate():
        raise SystemExit(1)

    return RepositoryIndexer(
        forge=client,
        repo_manager=RepoManager(config.get("cache_root", "./cache")),
        skip_list=config.get("skip_list") or [],
        count_tickets=bool(config.get("count_tickets", False)),
    )


def run_index(
    indexer: RepositoryIndexer,
    handles: list[str],
) -> tuple[list[RepositoryRecord], list[str]]:
    """Index each repository in turn; failures do not stop the run."""
    records: list[RepositoryRecord] = []
    failed: list[str] = []

    for handle in handles:
        try:
            record = indexer.index(handle)
        except CrawlError as e:
            console.print(f"  [red]✗[/red] {e}")
            failed.append(e.handle)
            continue

        if record is None:
            console.print(f"  [yellow]-[/yellow] {handle} (skipped)")
            continue

        packages = sum(len(ref.packages) for ref in record.refs)
        console.print(
            f"  [green]✓[/green] {record.id} "
            f"({record.status}, {len(record.refs)} refs, {packages} packages)"
        )
        records.append(record)

    return records, failed


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="GoCrawler - index Go repositories for a package catalog"
    )
    parser.add_argument(
        "repositories",
        nargs="*",
        help="Repositories to index (URL, github.com/owner/name or owner/name)",
    )
    parser.add_argument(
        "--config", "-c",
        default="config/config.yaml",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--output", "-o",
        help="Directory for JSON output (overrides output.base_path)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    config = load_config(Path(args.config))

    handles = args.repositories or config.get("repositories") or []
    if not handles:
        parser.print_help()
        return 0

    console.print(f"[bold]Indexing {len(handles)} repositories[/bold]")
    indexer = build_indexer(config)
    records, failed = run_index(indexer, handles)

    output_dir = args.output or (config.get("output") or {}).get("base_path", "./output")
    generator = OutputGenerator(output_dir)
    for record in records:
        generator.write_repository(record)
    generator.write_summary(records, failed)

    if failed:
        console.print(f"[red]{len(failed)} repositories failed[/red]")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
