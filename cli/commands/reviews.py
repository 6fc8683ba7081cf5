"""Review commands for the App Store reviews CLI."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import typer
from rich.console import Console

from cli.utils.formatting import Formatter
from cli.utils.output import OutputManager
from cli.utils.validation import ValidationError, Validator
from core.app_store.review_feed import FeedState, ReviewFeedClient
from core.app_store.review_models import find_review
from core.app_store.config import settings
from core.settings_store import (
    JsonSettingsStore,
    SelectedApp,
    clear_selected_app,
    load_selected_app,
    save_selected_app,
)

app = typer.Typer(help="💬 Browse App Store customer reviews")
console = Console()
formatter = Formatter(console)
output_manager = OutputManager(console=console)
validator = Validator()


async def _retry_failed(client: ReviewFeedClient, retries: int) -> None:
    """Re-invoke whichever operation failed, like a "Try again" button."""
    attempts = 0
    while client.last_error and attempts < retries:
        attempts += 1
        formatter.print_warning(f"{client.last_error} Retrying ({attempts}/{retries})...")
        if not client.reviews:
            await client.refresh()
        else:
            client.load_next_page_if_needed(client.reviews[-1])
            await client.wait_idle()


async def collect_reviews(client: ReviewFeedClient, pages: int, retries: int = 0) -> FeedState:
    """Load the first page, then keep asking for more until ``pages`` loads ran."""
    client.load_first_page()
    await client.wait_idle()
    await _retry_failed(client, retries)

    loads = 1
    while loads < pages and client.has_more and client.reviews and not client.last_error:
        # Scrolling to the last row is what triggers the next page.
        if client.load_next_page_if_needed(client.reviews[-1]) is None:
            break
        loads += 1
        await client.wait_idle()
        await _retry_failed(client, retries)

    return client.snapshot()


@app.command()
def show(
    app_id: Optional[str] = typer.Argument(None, help="App Store id (e.g. 284882215). Defaults to the remembered app."),
    country: Optional[str] = typer.Option(None, "--country", "-c", help="Country code (US, TR, GB, DE, etc.)"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Feed language (e.g. en, en-US)"),
    pages: int = typer.Option(1, "--pages", "-p", help="Number of feed pages to load (max: 10)"),
    retries: int = typer.Option(1, "--retries", help="Manual retry rounds after a failed load"),
    expand: bool = typer.Option(False, "--expand", "-e", help="Show full review bodies"),
    raw: Optional[str] = typer.Option(None, "--raw", help="Print the raw feed entry of this review id"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the loaded reviews as JSON"),
    remember: bool = typer.Option(True, "--remember/--no-remember", help="Remember this app for next time"),
) -> None:
    """Show the most recent customer reviews of an app.

    Examples:
      app-reviews reviews show 284882215 --country US --pages 3
      app-reviews reviews show --raw 10987654321
    """
    store = JsonSettingsStore()
    try:
        previous = load_selected_app(store)
        if app_id is None:
            if previous is None:
                raise ValidationError("No app id given and no remembered app")
            app_id = str(previous.app_id)
            country = country or previous.country
            language = language or previous.language

        content_id = validator.validate_app_id(app_id)
        country = validator.validate_country_code(country or settings.default_country)
        language = validator.validate_language(language or settings.default_language)
        pages = validator.validate_pages(pages)

        console.print(
            f"Loading reviews for app {content_id} in {country.upper()} "
            f"(pages: {pages}{', language: ' + language if language else ''})"
        )

        client = ReviewFeedClient(content_id, country, language)
        with formatter.create_progress() as progress:
            progress.add_task("Fetching reviews...", total=None)
            state = asyncio.run(collect_reviews(client, pages, max(0, retries)))

        if raw is not None:
            review = find_review(list(state.reviews), raw)
            if review is None:
                formatter.print_error(f"Review {raw} is not among the loaded reviews")
                raise typer.Exit(1)
            formatter.print_json(review.raw_entry, title=f"Raw entry {raw}")
        elif state.reviews:
            formatter.print_reviews(state.reviews, expanded=expand)
        elif not state.last_error:
            formatter.print_empty_state(country)

        if state.last_error:
            formatter.print_error(state.last_error)

        if remember:
            save_selected_app(
                store,
                SelectedApp(
                    app_id=content_id,
                    name=previous.name if previous and previous.app_id == content_id else None,
                    country=country,
                    language=language,
                ),
            )

        output_path = None
        if save and state.reviews:
            payload = {
                "query": {
                    "app_id": content_id,
                    "country": country,
                    "language": language,
                    "pages": pages,
                },
                "fetched_at": datetime.now(timezone.utc).isoformat(),
                "current_page": state.current_page,
                "has_more": state.has_more,
                "reviews": [review.to_dict() for review in state.reviews],
            }
            output_path = output_manager.save_json(
                payload,
                "reviews",
                output_manager.get_timestamped_filename("reviews"),
                store="app-store",
                slug=str(content_id),
            )

        output_manager.print_summary(
            {
                "App": content_id,
                "Country": country.upper(),
                "Reviews": len(state.reviews),
                "Last page": state.current_page,
                "More available": "yes" if state.has_more else "no",
                **({"Output": str(output_path)} if output_path else {}),
            }
        )

        if state.last_error and not state.reviews:
            raise typer.Exit(1)

    except ValidationError as e:
        console.print(f"[red]Validation error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def forget() -> None:
    """Forget the remembered app."""
    store = JsonSettingsStore()
    if load_selected_app(store) is None:
        console.print("[yellow]No remembered app[/yellow]")
        return
    clear_selected_app(store)
    formatter.print_success("Remembered app cleared")


@app.command()
def remembered() -> None:
    """Print the remembered app, if any."""
    selected = load_selected_app(JsonSettingsStore())
    if selected is None:
        console.print("[yellow]No remembered app[/yellow]")
        return
    output_manager.print_summary(
        {
            "App": selected.app_id,
            "Name": selected.name or "-",
            "Country": (selected.country or settings.default_country).upper(),
            "Language": selected.language or "-",
        }
    )
