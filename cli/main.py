"""Entry point for the App Store reviews CLI."""

import logging

import typer
from rich.logging import RichHandler

from cli.commands import reviews
from core.app_store.config import settings

app = typer.Typer(help="App Store customer reviews browser", no_args_is_help=True)
app.add_typer(reviews.app, name="reviews")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Browse the most recent reviews of an App Store app."""
    configure_logging("DEBUG" if verbose else settings.log_level)


if __name__ == "__main__":
    app()
