"""
nuxfly Exception Hierarchy

Every failure the CLI reports is a NuxflyError carrying a process exit code
and an optional remediation suggestion.
"""

from typing import Optional

from nuxfly.constants import (
    EXIT_CONFIG_INVALID,
    EXIT_GENERIC,
    EXIT_NOT_FOUND,
    EXIT_NOT_NUXT_PROJECT,
    EXIT_PERMISSION_DENIED,
    EXIT_TOOL_NOT_FOUND,
    EXIT_USER_CANCELLED,
    FLYCTL_INSTALL_URL,
)


def exit_status(returncode: int) -> int:
    """Convert a Popen returncode to a shell exit status (killed by signal N -> 128+N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class NuxflyError(Exception):
    """Base exception for all nuxfly errors."""

    exit_code = EXIT_GENERIC

    def __init__(
        self,
        message: str,
        suggestion: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        self.message = message
        self.suggestion = suggestion
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(message)

    def format_message(self) -> str:
        """Format error message with optional suggestion."""
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ToolNotFoundError(NuxflyError):
    """Raised when an external executable is not installed."""

    exit_code = EXIT_TOOL_NOT_FOUND

    def __init__(self, tool: str = "flyctl", suggestion: Optional[str] = None):
        self.tool = tool
        if suggestion is None and tool == "flyctl":
            suggestion = f"Install flyctl from {FLYCTL_INSTALL_URL}"
        super().__init__(f"{tool} not found in PATH", suggestion)


class DescriptorNotFoundError(NuxflyError):
    """Raised when the fly.toml descriptor is required but missing."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"{path} not found",
            "Run 'nuxfly launch' to create a new app or 'nuxfly import' to import an existing one",
        )


class EnvironmentNotSetError(NuxflyError):
    """Raised when several descriptors exist but NUXFLY_ENV does not pick one."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, candidates: list[str]):
        self.candidates = candidates
        super().__init__(
            "Multiple fly.toml files found but NUXFLY_ENV is not set",
            f"Found: {', '.join(candidates)}. Set NUXFLY_ENV (e.g. NUXFLY_ENV=prod) to choose one",
        )


class ConfigInvalidError(NuxflyError):
    """Raised when the resolved configuration violates an invariant."""

    exit_code = EXIT_CONFIG_INVALID

    def __init__(self, message: str, field: Optional[str] = None, suggestion: Optional[str] = None):
        self.field = field
        super().__init__(f"Configuration error: {message}", suggestion)


class NotRecognizedProjectError(NuxflyError):
    """Raised when the working directory is not a Nuxt project."""

    exit_code = EXIT_NOT_NUXT_PROJECT

    def __init__(self, cwd: Optional[str] = None):
        self.cwd = cwd
        super().__init__(
            "Not a Nuxt project (no nuxt.config file found)",
            "Run this command from the root of a Nuxt project",
        )


class PermissionDeniedError(NuxflyError):
    """Raised when a file or executable cannot be accessed."""

    exit_code = EXIT_PERMISSION_DENIED

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Permission denied: {path}",
            "Check file permissions or run with appropriate privileges",
        )


class ExternalCommandError(NuxflyError):
    """Raised when an external command exits non-zero."""

    def __init__(self, command: str, returncode: int, stderr: str = "", tool: str = "flyctl"):
        self.command = command
        self.returncode = exit_status(returncode)
        self.stderr = stderr
        self.tool = tool
        suggestion = f"{tool} error: {stderr.strip()}" if stderr and stderr.strip() else None
        super().__init__(
            f"{tool} {command} failed with exit code {self.returncode}",
            suggestion,
            exit_code=self.returncode,
        )

    @property
    def is_cancelled(self) -> bool:
        """Check if the command was interrupted by the user."""
        return self.returncode == EXIT_USER_CANCELLED


class TunnelTimeoutError(NuxflyError):
    """Raised when the database tunnel does not report readiness in time."""

    def __init__(self, timeout: int):
        self.timeout = timeout
        super().__init__(
            f"Tunnel setup timeout after {timeout}s",
            "Check that the app is running with 'nuxfly status'",
        )
