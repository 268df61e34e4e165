"""
Project Command Base Class

Base class for commands that run inside a Nuxt project.
Provides configuration loading and service initialization.
"""

from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console

from nuxfly.core.config_loader import ConfigLoader
from nuxfly.core.validator import Validator
from nuxfly.flyctl_utils import FlyctlManager
from nuxfly.models.config import ResolvedConfig
from .base_command import BaseCommand


class ProjectCommand(BaseCommand):
    """
    Base class for project commands.

    Provides:
    - Configuration loading (fresh on every run)
    - File + console logger under .nuxfly/logs
    - Pre-configured flyctl adapter and validator
    """

    command_name = "command"

    def __init__(
        self,
        verbose: bool = False,
        cwd: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        config_loader: Optional[ConfigLoader] = None,
        console: Optional[Console] = None,
    ):
        super().__init__(verbose=verbose, console=console)
        self.config_loader = config_loader or ConfigLoader(cwd, environ)
        self.config: Optional[ResolvedConfig] = None
        self.flyctl: Optional[FlyctlManager] = None
        self.validator: Optional[Validator] = None

    def create_flyctl(self, config: Optional[ResolvedConfig]) -> FlyctlManager:
        """Build the flyctl adapter for a configuration."""
        return FlyctlManager(
            config=config, logger=self.logger, environ=self.config_loader.environ
        )

    def setup(self) -> None:
        """Load configuration, then initialize logger, flyctl and validator."""
        self.config = self.config_loader.load()
        self.init_logger(self.command_name, self.config.runtime.nuxfly_dir)
        self.logger.debug(f"Loaded configuration: {self.config!r}")
        self.logger.debug(f"Descriptor: {self.config.descriptor_path}")
        self.flyctl = self.create_flyctl(self.config)
        self.validator = Validator(self.config, self.flyctl)

    def use_config(self, config: ResolvedConfig) -> None:
        """Switch to a derived configuration (e.g. after choosing the app name)."""
        self.config = config
        self.flyctl = self.create_flyctl(config)
        self.validator = Validator(config, self.flyctl)

    @property
    def cwd(self) -> Path:
        return self.config.runtime.cwd

    @property
    def nuxfly_dir(self) -> Path:
        return self.config.runtime.nuxfly_dir
