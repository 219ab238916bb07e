"""Output generators for crawled repositories."""

import json
from pathlib import Path
from typing import Any

from rich.console import Console

from .models import RepositoryRecord

console = Console()


class OutputGenerator:
    """Write repository records as JSON documents."""

    def __init__(self, output_dir: Path | str = "./output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, record: RepositoryRecord) -> Path:
        """One file per handle, mirroring the handle's path segments."""
        return self.output_dir / "repositories" / f"{record.id}.json"

    def write_repository(self, record: RepositoryRecord) -> Path:
        """Write a single repository document."""
        path = self.path_for(record)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._write_json(path, record.model_dump(mode="json"))
        return path

    def write_summary(self, records: list[RepositoryRecord], failed: list[str]) -> Path:
        """Write an index of what was crawled in this run."""
        summary = {
            "repositories_indexed": len(records),
            "repositories_failed": len(failed),
            "failed": failed,
            "repositories": [
                {
                    "id": r.id,
                    "status": r.status,
                    "refs": len(r.refs),
                    "packages": sum(len(ref.packages) for ref in r.refs),
                }
                for r in records
            ],
        }
        path = self.output_dir / "summary.json"
        self._write_json(path, summary)
        console.print(f"[green]✓[/green] Wrote {len(records)} repositories to {self.output_dir}")
        return path

    def _write_json(self, path: Path, data: Any) -> None:
        """Write data as JSON."""
        path.write_text(json.dumps(data, indent=2, default=str))
