"""
Base Command Class

Abstract base for all nuxfly CLI commands.
Provides common functionality and structure.
"""

import os
import traceback
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from nuxfly.constants import EXIT_GENERIC, EXIT_NOT_FOUND, EXIT_PERMISSION_DENIED
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.logger import DeployLogger
from nuxfly.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling with exit codes from the nuxfly error hierarchy
    - Silent return when the user cancels
    """

    def __init__(self, verbose: bool = False, console: Optional[Console] = None):
        self.verbose = verbose
        self.console = console or Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(
        self, operation: str, nuxfly_dir: Optional[Path] = None
    ) -> DeployLogger:
        """
        Initialize command logger.

        Args:
            operation: Command name used in the log file name
            nuxfly_dir: Project .nuxfly directory (console-only when None)

        Returns:
            DeployLogger instance
        """
        self.logger = DeployLogger(
            operation, nuxfly_dir=nuxfly_dir, verbose=self.verbose, console_=self.console
        )
        return self.logger

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        app: Optional[str] = None,
        environment: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skipped in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title,
                subtitle=subtitle,
                app=app,
                environment=environment,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(message)}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def setup(self) -> None:
        """Prepare state before execute(). Errors here are handled like execute() errors."""

    @abstractmethod
    def execute(self) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """

    def _report(self, message: str, suggestion: Optional[str] = None) -> None:
        if self.logger:
            self.logger.log_error(message, context=suggestion)
        else:
            self.console.print(f"\n[bold red]✗ {escape(message)}[/bold red]")
            if suggestion:
                self.console.print(f"  [color(208)]{escape(suggestion)}[/color(208)]")
        if self.logger and self.logger.log_path:
            self.console.print(f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    def _cancelled(self) -> None:
        self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
        if self.logger:
            self.logger.log("Operation cancelled by user", "WARNING")

    def run(self) -> None:
        """
        Run command with error handling.

        Raises:
            SystemExit: With the exit code carried by the failure
        """
        try:
            self.setup()
            self.execute()
        except ExternalCommandError as e:
            if e.is_cancelled:
                self._cancelled()
                return
            self._report(e.message, e.suggestion)
            raise SystemExit(e.exit_code)
        except NuxflyError as e:
            self._report(e.message, e.suggestion)
            raise SystemExit(e.exit_code)
        except KeyboardInterrupt:
            self._cancelled()
            return
        except SystemExit:
            raise
        except FileNotFoundError as e:
            self._report(f"File not found: {e.filename or e}")
            raise SystemExit(EXIT_NOT_FOUND)
        except PermissionError as e:
            self._report(
                f"Permission denied: {e.filename or e}",
                "Check file permissions or run with appropriate privileges",
            )
            raise SystemExit(EXIT_PERMISSION_DENIED)
        except Exception as e:
            self._report(f"{type(e).__name__}: {e}")
            if self.verbose or os.environ.get("DEBUG"):
                traceback.print_exc()
            raise SystemExit(EXIT_GENERIC)
        finally:
            if self.logger:
                self.logger.close()
