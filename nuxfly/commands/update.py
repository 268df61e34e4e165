"""nuxfly - Update command"""

from typing import Optional

import click

from nuxfly.base import ProjectCommand
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.services import BucketService
from nuxfly.services.bucket_service import enabled_bucket_kinds


class UpdateCommand(ProjectCommand):
    """
    Add storage buckets that the Nuxt config enables but the app lacks.

    Existing buckets are left untouched, so the command is safe to re-run.
    """

    command_name = "update"

    def __init__(self, app: Optional[str] = None, verbose: bool = False, **kwargs):
        super().__init__(verbose=verbose, **kwargs)
        self.app = app

    def execute(self) -> None:
        # --app, then the descriptor/FLY_APP value
        app = self.app or self.config.app
        if not app:
            raise NuxflyError(
                "App name is required",
                "Pass --app or make sure fly.toml exists",
            )

        kinds = enabled_bucket_kinds(self.config.features)
        self.show_header(
            title="Update",
            app=app,
            environment=self.config.runtime.environment,
            details={"Buckets": ", ".join(kinds) or "none"},
        )

        self.logger.step("Checking app access")
        self.validator.validate_dependencies()
        self.validator.validate_app_access(app)
        org = self.flyctl.get_org_name(app)
        if not org:
            raise NuxflyError(
                "Could not determine organization name",
                "Make sure you have access to the app",
            )
        self.logger.debug(f"Using organization: {org}")

        if not kinds:
            self.logger.info("No bucket configuration found in nuxt.config")
            self.logger.info(
                "Add litestream, publicStorage or privateStorage to the nuxfly section to enable buckets"
            )
            return

        self.logger.step("Provisioning buckets")
        summary = BucketService(self.flyctl, self.logger).ensure_buckets(app, org, kinds)

        if "public" in kinds:
            try:
                if self.flyctl.ensure_public_bucket_url_secret(app):
                    self.logger.success("Staged public bucket URL secret")
            except ExternalCommandError as e:
                if e.is_cancelled:
                    raise
                self.logger.warning(f"Could not set public bucket URL secret: {e.message}")

        if summary.has_failures:
            raise NuxflyError(
                f"Failed to create buckets: {', '.join(summary.failed)}",
                "Check 'nuxfly storage list' and re-run 'nuxfly update'",
            )

        if summary.created:
            self.logger.success(f"Created {len(summary.created)} bucket(s)")
            self.logger.info("Deploy your app to use the new bucket configuration")
        else:
            self.logger.success("All configured buckets already exist")


@click.command(name="update")
@click.option("--app", "-a", help="Fly app to update (defaults to fly.toml app)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def update(app, verbose):
    """
    Create missing storage buckets for the enabled features

    \b
    Examples:
      nuxfly update
      nuxfly update --app my-app
    """
    cmd = UpdateCommand(app=app, verbose=verbose)
    cmd.run()
