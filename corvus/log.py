"""Logging setup for the command line."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False):
    """Route ``corvus`` loggers through rich on stderr. WARNING unless verbose."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger("corvus")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False

    # SDK and HTTP client chatter stays out unless verbose
    for noisy in ("httpx", "httpcore", "openai", "anthropic", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)
