"""
Build Service

Runs the project's package manager and stages build output and drizzle
migrations into the .nuxfly directory.
"""

import subprocess
from pathlib import Path
from typing import Optional, Sequence

from nuxfly.constants import (
    DIST_DIR_NAME,
    DRIZZLE_MIGRATION_DIRS,
    PACKAGE_MANAGER_INSTALL_HINTS,
)
from nuxfly.exceptions import (
    ExternalCommandError,
    NuxflyError,
    PermissionDeniedError,
    ToolNotFoundError,
)
from nuxfly.logger import DeployLogger
from nuxfly.process_utils import forward_signals
from nuxfly.utils import FileUtils, ProjectUtils


class BuildService:
    """Build and staging operations for a Nuxt project."""

    def __init__(self, cwd: Path, logger: Optional[DeployLogger] = None):
        self.cwd = Path(cwd)
        self.logger = logger

    @property
    def package_manager(self) -> str:
        return ProjectUtils.detect_package_manager(self.cwd)

    def _run(self, tool: str, args: Sequence[str], cwd: Path, suggestion: str) -> None:
        """Run a tool with inherited stdio, mapping failures to nuxfly errors."""
        if self.logger:
            self.logger.log_command(" ".join([tool, *args]))
        try:
            process = subprocess.Popen([tool, *args], cwd=cwd)
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                tool, PACKAGE_MANAGER_INSTALL_HINTS.get(tool, f"Install {tool}")
            ) from e
        except PermissionError as e:
            raise PermissionDeniedError(tool) from e
        except OSError as e:
            raise NuxflyError(f"Failed to run {tool}: {e}") from e

        with forward_signals(process):
            returncode = process.wait()

        if returncode != 0:
            error = ExternalCommandError(" ".join(args), returncode, tool=tool)
            error.suggestion = suggestion
            raise error

    def build_application(self) -> None:
        """
        Run `<package manager> run build` in the project root.

        Raises:
            ToolNotFoundError: If the package manager is not installed
            ExternalCommandError: If the build fails
        """
        manager = self.package_manager
        self._run(
            manager,
            ["run", "build"],
            self.cwd,
            'Check the build output above for details. Make sure your package.json has a "build" script.',
        )
        if self.logger:
            self.logger.success("Application built successfully")

    def install_nuxfly_dependencies(self, nuxfly_dir: Path) -> None:
        """Install the migration tool package in .nuxfly (produces package-lock.json)."""
        self._run(
            "npm",
            ["install"],
            Path(nuxfly_dir),
            "Check the npm install output above. Make sure .nuxfly/package.json is valid.",
        )
        if self.logger:
            self.logger.success("Installed migration dependencies in .nuxfly")

    def copy_dist(self, nuxfly_dir: Path) -> Path:
        """
        Copy .output into .nuxfly/.output.

        Raises:
            NuxflyError: If the project has not been built
        """
        source = self.cwd / DIST_DIR_NAME
        if not source.is_dir():
            raise NuxflyError(
                "No .output directory found",
                "Build your Nuxt application first or pass --build",
            )
        destination = FileUtils.copy_tree(source, Path(nuxfly_dir) / DIST_DIR_NAME)
        if self.logger:
            self.logger.success(f"Copied {DIST_DIR_NAME} to {destination}")
        return destination

    def find_migrations_dir(self, configured: Optional[str] = None) -> Optional[Path]:
        """Locate the drizzle migrations directory in the project."""
        candidates = [configured] if configured else list(DRIZZLE_MIGRATION_DIRS)
        for candidate in candidates:
            path = self.cwd / candidate
            if path.is_dir():
                return path
        return None

    def copy_drizzle_migrations(
        self, nuxfly_dir: Path, configured: Optional[str] = None
    ) -> Path:
        """
        Copy drizzle migrations into .nuxfly/drizzle/migrations.

        An empty directory is created when the project has no migrations so
        the Dockerfile COPY step still succeeds.
        """
        destination = Path(nuxfly_dir) / "drizzle" / "migrations"
        source = self.find_migrations_dir(configured)
        if source is None:
            destination.mkdir(parents=True, exist_ok=True)
            if self.logger:
                self.logger.warning("No drizzle migrations found; the image will start with an empty schema")
            return destination

        changed = FileUtils.changed_files(source, destination)
        if not changed and destination.is_dir():
            if self.logger:
                self.logger.debug("Drizzle migrations are up to date")
            return destination

        FileUtils.copy_tree(source, destination)
        if self.logger:
            self.logger.success(f"Copied drizzle migrations from {source.relative_to(self.cwd)}")
        return destination
