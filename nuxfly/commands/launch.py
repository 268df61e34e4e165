"""nuxfly - Launch command"""

import math
import re
from dataclasses import dataclass, replace
from typing import Optional

import click

from nuxfly.base import ProjectCommand
from nuxfly.constants import (
    APP_NAME_MAX_LENGTH,
    DEFAULT_VOLUME_SIZE_GB,
    SQLITE_MOUNT_PATH,
    SQLITE_VOLUME_NAME,
)
from nuxfly.core.descriptor import environment_app_name
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.models.config import Volume
from nuxfly.services import ArtifactService, BucketService, BuildService
from nuxfly.services.bucket_service import enabled_bucket_kinds
from nuxfly.ui_components import show_summary


def size_in_gb(size: str) -> int:
    """Convert '512mb'/'3gb' to whole gigabytes for `flyctl volumes create --size`."""
    match = re.match(r"^(\d+)(mb|gb)$", size.strip().lower())
    if not match:
        return DEFAULT_VOLUME_SIZE_GB
    amount, unit = int(match.group(1)), match.group(2)
    if unit == "mb":
        return max(1, math.ceil(amount / 1024))
    return max(1, amount)


def default_app_name(directory_name: str) -> str:
    """Derive a valid Fly app name from the project directory name."""
    name = re.sub(r"[^a-z0-9-]+", "-", directory_name.lower()).strip("-")
    name = re.sub(r"-{2,}", "-", name)[:APP_NAME_MAX_LENGTH].strip("-")
    return name or "nuxt-app"


@dataclass
class LaunchOptions:
    """Options for launch command."""

    name: Optional[str] = None
    region: Optional[str] = None
    deploy: bool = False
    size: int = DEFAULT_VOLUME_SIZE_GB


class LaunchCommand(ProjectCommand):
    """
    Create a new Fly.io app for the project.

    Steps:
    - Generate fly.toml, Dockerfile, .dockerignore and image support files
    - `flyctl launch` with the generated descriptor
    - SQLite volume
    - Storage buckets for the enabled features
    """

    command_name = "launch"

    def __init__(self, options: LaunchOptions, verbose: bool = False, **kwargs):
        super().__init__(verbose=verbose, **kwargs)
        self.options = options

    def resolve_app_name(self) -> str:
        base = self.options.name or self.config.app or default_app_name(self.cwd.name)
        return environment_app_name(base, self.config.runtime.environment)

    def execute(self) -> None:
        runtime = self.config.runtime
        app_name = self.resolve_app_name()
        region = self.options.region or self.config.region

        self.show_header(
            title="Launch",
            app=app_name,
            environment=runtime.environment,
            details={"Region": region, "Descriptor": runtime.descriptor_path.name},
        )

        self.logger.step("Validating prerequisites")
        result = self.validator.validate_launch(app_name, region)
        for warning in result.warnings:
            self.logger.warning(warning)

        if self.config.descriptor_exists and self.config.app:
            if self.flyctl.check_app_access(self.config.app):
                raise NuxflyError(
                    f"App '{self.config.app}' already exists ({runtime.descriptor_path.name})",
                    "Use 'nuxfly deploy' to deploy it, or 'nuxfly update' to add storage",
                )

        if self.options.deploy and not runtime.has_dist:
            raise NuxflyError(
                "No .output directory found",
                "Build your Nuxt application first, or launch with --no-deploy",
            )
        self.logger.success("Prerequisites satisfied")

        volumes = list(self.config.volumes) or [
            Volume(SQLITE_VOLUME_NAME, SQLITE_MOUNT_PATH, f"{self.options.size}gb")
        ]
        self.use_config(
            replace(self.config, app=app_name, region=region, volumes=volumes)
        )

        self.logger.step("Generating deployment files")
        artifacts = ArtifactService(self.config, self.logger)
        artifacts.write_descriptor()
        artifacts.write_image_files(prebuilt=True)
        build = BuildService(self.cwd, self.logger)
        build.copy_drizzle_migrations(
            self.nuxfly_dir, self.config.features.get("migrationsDir")
        )
        if self.options.deploy:
            build.copy_dist(self.nuxfly_dir)
        self.use_config(self.config_loader.reload(self.config))

        self.logger.step("Creating Fly.io app")
        self.flyctl.launch(
            app_name,
            region,
            config_path=None if runtime.is_production else runtime.descriptor_path,
            no_deploy=not self.options.deploy,
        )
        self.logger.success(f"App {app_name} created")

        self.logger.step("Creating volumes")
        self._create_volumes(app_name, region, volumes)

        self.logger.step("Provisioning storage")
        self._provision_storage(app_name)

        show_summary(
            "Next steps",
            [
                f"1. Review {runtime.descriptor_path.name} and commit it",
                "2. Build your app (e.g. npm run build)",
                "3. Run: nuxfly deploy",
            ],
            border_color="green",
            console=self.console,
        )

    def _create_volumes(self, app_name: str, region: str, volumes: list[Volume]) -> None:
        for volume in volumes:
            if self.flyctl.volume_exists(volume.name, app_name):
                self.logger.info(f"Volume {volume.name} already exists, skipping")
                continue
            self.flyctl.create_volume(
                volume.name, region, size_in_gb(volume.size), app=app_name
            )
            self.logger.success(f"Created volume {volume.name} ({volume.size})")

    def _provision_storage(self, app_name: str) -> None:
        kinds = enabled_bucket_kinds(self.config.features)
        if not kinds:
            self.logger.info(
                "No storage enabled (set nuxfly.litestream, publicStorage or privateStorage in nuxt.config)"
            )
            return

        org = self.flyctl.get_org_name(app_name)
        summary = BucketService(self.flyctl, self.logger).ensure_buckets(app_name, org, kinds)
        if summary.has_failures:
            self.logger.warning(
                f"Some buckets could not be created: {', '.join(summary.failed)}. Re-run 'nuxfly update' later"
            )

        if "public" in kinds:
            try:
                self.flyctl.ensure_public_bucket_url_secret(app_name)
            except ExternalCommandError as e:
                if e.is_cancelled:
                    raise
                self.logger.warning(f"Could not set public bucket URL secret: {e.message}")


@click.command(name="launch")
@click.option("--name", help="App name (defaults to fly.toml app or directory name)")
@click.option("--region", help="Primary region (e.g. ord)")
@click.option("--deploy/--no-deploy", default=False, help="Deploy right after launch")
@click.option("--size", type=int, default=DEFAULT_VOLUME_SIZE_GB, show_default=True, help="SQLite volume size in GB")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def launch(name, region, deploy, size, verbose):
    """
    Create a new Fly.io app with SQLite volume and storage buckets

    \b
    Examples:
      nuxfly launch --name my-app --region ord
      NUXFLY_ENV=staging nuxfly launch
    """
    options = LaunchOptions(name=name, region=region, deploy=deploy, size=size)
    cmd = LaunchCommand(options, verbose=verbose)
    cmd.run()
