"""nuxfly - Deploy command"""

from typing import Optional

import click

from nuxfly.base import ProjectCommand
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.services import ArtifactService, BucketService, BuildService
from nuxfly.services.bucket_service import enabled_bucket_kinds
from nuxfly.ui_components import show_summary


class DeployCommand(ProjectCommand):
    """
    Deploy the app with `flyctl deploy`.

    Features:
    - Optional local build with migration staging
    - Missing storage buckets are created (best-effort)
    - Public bucket URL secret is ensured (best-effort)
    """

    command_name = "deploy"

    def __init__(
        self,
        strategy: Optional[str] = None,
        build: bool = False,
        verbose: bool = False,
        **kwargs,
    ):
        super().__init__(verbose=verbose, **kwargs)
        self.strategy = strategy
        self.build = build

    def execute(self) -> None:
        runtime = self.config.runtime
        self.show_header(
            title="Deploy",
            app=self.config.app,
            environment=runtime.environment,
            details={
                "Strategy": self.strategy or "default",
                "Build": "Yes" if self.build else "No",
            },
        )

        self.logger.step("Validating deployment")
        self.validator.validate_command("deploy")
        if not runtime.has_dist and not self.build:
            raise NuxflyError(
                "No .output directory found! Please build your Nuxt application first.",
                "Run your build script or pass --build",
            )
        self.logger.success(f"App {self.config.app} is reachable")

        build = BuildService(self.cwd, self.logger)
        migrations_dir = self.config.features.get("migrationsDir")
        if self.build:
            self.logger.step("Building application")
            build.build_application()

        self.logger.step("Preparing image files")
        ArtifactService(self.config, self.logger).write_image_files(prebuilt=True)
        build.copy_drizzle_migrations(self.nuxfly_dir, migrations_dir)
        build.copy_dist(self.nuxfly_dir)

        self.logger.step("Checking storage")
        self._ensure_storage()

        self.logger.step("Deploying to Fly.io")
        self.flyctl.deploy(strategy=self.strategy)

        show_summary(
            "Deployed",
            [
                f"App: {self.config.app}",
                f"URL: https://{self.config.app}.fly.dev",
                "Logs: nuxfly logs",
            ],
            border_color="green",
            console=self.console,
        )

    def _ensure_storage(self) -> None:
        """Create missing buckets and the public URL secret; failures only warn."""
        app = self.config.app
        kinds = enabled_bucket_kinds(self.config.features)
        if not kinds:
            self.logger.info("No storage features enabled")
            return

        try:
            org = self.flyctl.get_org_name(app)
            summary = BucketService(self.flyctl, self.logger).ensure_buckets(app, org, kinds)
            if summary.created:
                self.logger.success(f"Created buckets: {', '.join(summary.created)}")
        except ExternalCommandError as e:
            if e.is_cancelled:
                raise
            self.logger.warning(f"Bucket check failed: {e.message}")

        if "public" in kinds:
            try:
                if self.flyctl.ensure_public_bucket_url_secret(app):
                    self.logger.success("Staged public bucket URL secret")
            except ExternalCommandError as e:
                if e.is_cancelled:
                    raise
                self.logger.warning(f"Could not set public bucket URL secret: {e.message}")


@click.command(name="deploy")
@click.option("--strategy", help="Deployment strategy (rolling, immediate, canary, bluegreen)")
@click.option("--build", is_flag=True, help="Build the application before deploying")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def deploy(strategy, build, verbose):
    """
    Deploy the application to Fly.io

    \b
    Examples:
      nuxfly deploy
      nuxfly deploy --build --strategy rolling
    """
    cmd = DeployCommand(strategy=strategy, build=build, verbose=verbose)
    cmd.run()
