"""Output utilities for the reviews CLI."""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rich.console import Console
from rich.table import Table

from core.app_store.config import settings


class OutputManager:
    """Manages output files and directories."""

    def __init__(self, base_dir: Optional[Union[str, Path]] = None, console: Optional[Console] = None):
        self.base_dir = Path(base_dir) if base_dir else settings.output_dir
        self.console = console or Console()

    def get_timestamped_filename(self, prefix: str, extension: str = "json") -> str:
        """Generate a timestamped filename."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{prefix}_{timestamp}.{extension}"

    def build_output_path(
        self,
        subdir: str,
        filename: str,
        *,
        store: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Path:
        """Return a full output path following the folder convention."""
        output_dir = self.base_dir / subdir
        if store:
            output_dir = output_dir / self._slugify(store)
        if slug:
            output_dir = output_dir / self._slugify(slug)
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir / filename

    def save_json(
        self,
        data: Dict[str, Any],
        subdir: str,
        filename: str,
        *,
        store: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Path:
        """Save data as JSON file (optionally inside an app-specific subdirectory)."""
        output_path = self.build_output_path(subdir, filename, store=store, slug=slug)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        self.console.print(f"[green]✓[/green] Saved: {output_path}")
        return output_path

    def print_summary(self, stats: Dict[str, Any]) -> None:
        """Print summary statistics."""
        table = Table(title="Summary", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        for key, value in stats.items():
            table.add_row(key.replace("_", " ").title(), str(value))

        self.console.print(table)

    @staticmethod
    def _slugify(value: Optional[str]) -> str:
        if not value:
            return "app"
        normalized = str(value).lower().strip()
        normalized = re.sub(r"[\s_]+", "-", normalized)
        normalized = re.sub(r"[^a-z0-9\-.]+", "-", normalized)
        normalized = re.sub(r"-{2,}", "-", normalized)
        normalized = normalized.strip("-.")
        return normalized or "app"
