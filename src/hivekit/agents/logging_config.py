"""Rich logging configuration for swarm applications."""

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback
from typing import Any, Dict, Optional


def setup_rich_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    show_path: bool = True,
    show_time: bool = True,
    rich_tracebacks: bool = True,
    console: Optional[Console] = None,
    use_stderr: bool = False
) -> Console:
    """Route loguru output through a Rich console.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a rotating DEBUG-level log file
        show_path: Show file path in console logs
        show_time: Show timestamp in console logs
        rich_tracebacks: Enable rich tracebacks with syntax highlighting
        console: Optional Rich Console instance (creates new if None)
        use_stderr: Write console output to stderr instead of stdout

    Returns:
        Console instance used for logging
    """
    if console is None:
        console = Console(stderr=use_stderr)

    if rich_tracebacks:
        install_rich_traceback(
            show_locals=False,
            width=console.width,
            extra_lines=3,
            theme="monokai",
            word_wrap=True,
            console=console
        )

    logger.remove()

    logger.add(
        RichHandler(
            console=console,
            rich_tracebacks=rich_tracebacks,
            markup=False,
            show_time=show_time,
            show_level=True,
            show_path=show_path
        ),
        format="{message}",
        level=level
    )

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG"
        )

    return console


def setup_from_settings(settings: Any, console: Optional[Console] = None) -> Console:
    """Configure logging from a Settings instance."""
    return setup_rich_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        show_path=settings.log_show_path,
        show_time=settings.log_show_time,
        rich_tracebacks=settings.log_rich_tracebacks,
        console=console,
    )


def log_node_results(node_results: Dict[str, Any], title: str = "Workflow", console: Optional[Console] = None):
    """Print per-node workflow results as a table.

    Args:
        node_results: Mapping of node name to Result
        title: Table title
        console: Console instance (creates new if None)
    """
    from rich.table import Table

    if console is None:
        console = Console()

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Node", style="cyan", no_wrap=True)
    table.add_column("Agent", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")

    for name, result in node_results.items():
        status = "[green]ok[/green]" if result.success else f"[red]{result.error}[/red]"
        table.add_row(name, str(result.agent or "-"), status, f"{result.duration:.2f}s")

    console.print(table)
