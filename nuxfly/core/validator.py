"""Precondition checks run at the top of each command"""

import re
from typing import Optional

from nuxfly.constants import (
    APP_NAME_MAX_LENGTH,
    APP_NAME_PATTERN,
    DEFAULT_REGION,
    REGION_PATTERN,
)
from nuxfly.exceptions import (
    DescriptorNotFoundError,
    NotRecognizedProjectError,
    NuxflyError,
)
from nuxfly.flyctl_utils import FlyctlManager
from nuxfly.models.config import ResolvedConfig
from nuxfly.models.results import ValidationResult
from nuxfly.utils import ProjectUtils

_APP_NAME_RE = re.compile(APP_NAME_PATTERN)
_REGION_RE = re.compile(REGION_PATTERN)

# Commands that operate on an existing deployment
DEPLOYMENT_COMMANDS = frozenset({"deploy", "studio", "update"})


class Validator:
    """
    Validates preconditions for nuxfly commands.

    Hard failures raise typed errors; advisory problems are collected as
    warnings in the returned ValidationResult.
    """

    def __init__(self, config: ResolvedConfig, flyctl: FlyctlManager):
        """
        Initialize validator.

        Args:
            config: Resolved configuration
            flyctl: flyctl adapter used for auth and access checks
        """
        self.config = config
        self.flyctl = flyctl

    def validate_project(self) -> None:
        """
        Raises:
            NotRecognizedProjectError: If cwd is not a Nuxt project
        """
        cwd = self.config.runtime.cwd
        if not ProjectUtils.is_nuxt_project(cwd):
            raise NotRecognizedProjectError(str(cwd))

    def validate_descriptor_exists(self) -> None:
        """
        Raises:
            DescriptorNotFoundError: If the active fly.toml is missing
        """
        if not self.config.descriptor_exists:
            raise DescriptorNotFoundError(self.config.descriptor_path.name)

    def validate_dependencies(self) -> None:
        """
        Raises:
            ToolNotFoundError: If flyctl is not installed
        """
        self.flyctl.check_available()

    def validate_auth(self) -> str:
        """
        Ensure a Fly.io session exists.

        Returns:
            Logged-in account

        Raises:
            NuxflyError: If not authenticated
        """
        account = self.flyctl.whoami()
        if not account:
            raise NuxflyError(
                "Not authenticated with Fly.io",
                "Run 'flyctl auth login' or set FLY_API_TOKEN",
            )
        return account

    def validate_app_access(self, app: Optional[str] = None) -> str:
        """
        Ensure the app exists and is reachable with the current credentials.

        Returns:
            App name that was checked

        Raises:
            NuxflyError: If no app name is known or the app is not accessible
        """
        app = app or self.config.app
        if not app:
            raise NuxflyError(
                "No app name configured",
                "Set 'app' in fly.toml, pass --app, or set FLY_APP",
            )
        if not self.flyctl.check_app_access(app):
            raise NuxflyError(
                f"Cannot access app '{app}'",
                "Check the app name and that you are logged in to the right organization",
            )
        return app

    def validate_deployment_config(self) -> None:
        """Descriptor present, flyctl installed, app reachable."""
        self.validate_descriptor_exists()
        self.validate_dependencies()
        self.validate_app_access()

    def validate_launch(self, name: Optional[str], region: Optional[str]) -> ValidationResult:
        """
        Validate launch inputs and prerequisites.

        Returns:
            ValidationResult with region warnings

        Raises:
            NuxflyError: On an invalid app name or missing authentication
        """
        self.validate_project()
        self.validate_dependencies()
        result = ValidationResult()
        if name:
            validate_app_name(name)
        region_result = validate_region(region)
        result.warnings.extend(region_result.warnings)
        self.validate_auth()
        return result

    def validate_command(self, command: str) -> None:
        """
        Run the checks a command needs before doing any work.

        Args:
            command: Command name (launch, generate, deploy, import, studio, update, proxy)
        """
        if command == "launch":
            self.validate_project()
            self.validate_dependencies()
        elif command == "generate":
            self.validate_project()
        elif command == "import":
            self.validate_project()
            self.validate_dependencies()
        elif command in DEPLOYMENT_COMMANDS:
            self.validate_project()
            self.validate_deployment_config()
        elif command == "proxy":
            self.validate_descriptor_exists()

    def preflight_checks(self) -> ValidationResult:
        """
        Non-fatal overview of the environment (used before launch).

        Returns:
            ValidationResult listing every problem found
        """
        result = ValidationResult()
        try:
            self.validate_dependencies()
        except NuxflyError as e:
            result.add_error(e.message)
            return result
        if not self.flyctl.whoami():
            result.add_error("Not authenticated with Fly.io")
        if not self.config.runtime.has_dist:
            result.add_warning("No .output directory found; run a build first")
        return result


def validate_port(port: int, name: str = "port") -> int:
    """
    Raises:
        NuxflyError: If port is outside 1-65535
    """
    if not isinstance(port, int) or not 1 <= port <= 65535:
        raise NuxflyError(
            f"Invalid {name}: {port}",
            "Port must be a number between 1 and 65535",
        )
    return port


def validate_app_name(name: str) -> str:
    """
    Fly app names: lowercase letters, digits and dashes, at most 30 characters.

    Raises:
        NuxflyError: If the name is invalid
    """
    if len(name) > APP_NAME_MAX_LENGTH or not _APP_NAME_RE.match(name):
        raise NuxflyError(
            f"Invalid app name: {name}",
            f"Use lowercase letters, numbers and dashes (max {APP_NAME_MAX_LENGTH} characters)",
        )
    return name


def validate_region(region: Optional[str]) -> ValidationResult:
    """Warn (never fail) when a region is not a three-letter code."""
    result = ValidationResult()
    region = region or DEFAULT_REGION
    if not _REGION_RE.match(region):
        result.add_warning(
            f"Region '{region}' does not look like a Fly.io region code (e.g. {DEFAULT_REGION})"
        )
    return result
