"""Formatting utilities for the reviews CLI."""

import json
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text

from core.app_store.review_models import MAX_RATING, Review

# Bodies longer than this are cut unless the review is expanded.
READ_MORE_THRESHOLD = 240


def format_stars(rating: int) -> str:
    filled = max(0, min(MAX_RATING, rating))
    return "★" * filled + "☆" * (MAX_RATING - filled)


def format_review_date(value: datetime) -> str:
    """``Mar 4, 2024`` style date."""
    return f"{value:%b} {value.day}, {value.year}"


def truncate_body(body: str, expanded: bool = False) -> str:
    if expanded or len(body) <= READ_MORE_THRESHOLD:
        return body
    return body[:READ_MORE_THRESHOLD].rstrip() + "…"


def format_meta(review: Review) -> str:
    return f"{review.author_name} • {format_review_date(review.updated_at)} • v{review.version}"


class Formatter:
    """Output formatting utilities."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_success(self, message: str) -> None:
        """Print success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def create_progress(self):
        """Create a spinner progress display."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True,
        )

    def print_review(self, review: Review, expanded: bool = False) -> None:
        body = Text(truncate_body(review.body, expanded))
        if not expanded and len(review.body) > READ_MORE_THRESHOLD:
            body.append("\nRead more with --expand", style="bold cyan")
        body.append(f"\n{format_meta(review)}", style="dim")

        title = Text(review.title, style="bold")
        title.append(f"  {format_stars(review.rating)} ", style="yellow")
        title.append(f"{review.rating}/{MAX_RATING}", style="dim")
        self.console.print(Panel(body, title=title, title_align="left"))

    def print_reviews(self, reviews: Iterable[Review], expanded: bool = False) -> None:
        for review in reviews:
            self.print_review(review, expanded=expanded)

    def print_empty_state(self, country: str) -> None:
        self.console.print(f"[dim]No reviews yet in {country.upper()}[/dim]")

    def print_json(self, data: Mapping[str, Any], title: str = "") -> None:
        """Print data as pretty JSON with sorted keys."""
        if title:
            self.console.print(f"[bold]{title}[/bold]")

        formatted_json = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False, default=str)
        self.console.print_json(formatted_json)
