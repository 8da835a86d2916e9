"""Console output and logging helpers."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

console = Console()
err_console = Console(stderr=True)


def print_with_style(message: str, style: str = "bold green") -> None:
    """Print a message with a given style."""
    console.print(f"[{style}]{message}[/{style}]")


def print_error_message(message: str, suggestion: str | None = None) -> None:
    """Print an error message in a red panel."""
    error_text = f"[bold red]{message}[/bold red]"
    if suggestion:
        error_text += f"\n\n[yellow]{suggestion}[/yellow]"
    err_console.print(Panel(error_text, title="Error", border_style="red"))


def setup_logging(log_level: str, log_file: str | None, *, quiet: bool) -> None:
    """Configure logging through Rich, optionally mirroring to a file."""
    handlers: list[logging.Handler] = []
    if not quiet:
        handlers.append(
            RichHandler(console=err_console, show_path=False, rich_tracebacks=True),
        )
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        )
        handlers.append(file_handler)
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )
    # Suppress noisy logs from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Write text to a sibling temp file and move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
