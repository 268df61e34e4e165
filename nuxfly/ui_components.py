"""
nuxfly - UI Components & Branding
Standardized headers and summary panels
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel

BRAND = "nuxfly"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    app: Optional[str] = None,
    environment: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized nuxfly command header.

    Args:
        title: Main title (e.g., "Launch", "Deploy")
        subtitle: Optional subtitle line
        app: Fly app name (if known)
        environment: Deployment environment (NUXFLY_ENV)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy",
            app="my-app",
            details={"Strategy": "rolling"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{BRAND}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")
    if app:
        console.print(f"{prefix} App: [cyan]{app}[/cyan]")
    if environment:
        console.print(f"{prefix} Environment: [cyan]{environment}[/cyan]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [cyan]{value}[/cyan]")

    console.print()


def show_summary(
    title: str,
    lines: list[str],
    border_color: str = BRAND_COLOR,
    console: Optional[Console] = None,
):
    """Display a bordered summary panel (generated files, next steps)."""
    if console is None:
        console = Console()

    console.print()
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]{title}[/bold]",
            title_align="left",
            border_style=border_color,
            padding=(1, 2),
            expand=False,
        )
    )
