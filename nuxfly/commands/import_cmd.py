"""nuxfly - Import command"""

from typing import Optional

import click

from nuxfly.base import ProjectCommand
from nuxfly.exceptions import ExternalCommandError, NuxflyError
from nuxfly.ui_components import show_summary
from nuxfly.utils import FileUtils


class ImportCommand(ProjectCommand):
    """Restore the local descriptor of an existing app with `flyctl config save`."""

    command_name = "import"

    def __init__(self, app: Optional[str] = None, verbose: bool = False, **kwargs):
        super().__init__(verbose=verbose, **kwargs)
        self.app = app

    def execute(self) -> None:
        runtime = self.config.runtime
        app = self.app or self.config.app
        if not app:
            raise NuxflyError(
                "No app name specified",
                "Use --app or set FLY_APP",
            )

        self.show_header(
            title="Import",
            app=app,
            environment=runtime.environment,
            details={"Descriptor": runtime.descriptor_path.name},
        )

        self.logger.step("Checking app access")
        self.validator.validate_command("import")
        self.validator.validate_app_access(app)
        self.logger.success(f"App {app} is reachable")

        self.logger.step("Saving app configuration")
        FileUtils.ensure_nuxfly_dir(self.cwd)
        backup = FileUtils.backup_file(runtime.descriptor_path)
        if backup:
            self.logger.info(f"Previous descriptor saved to {backup.name}")

        try:
            self.flyctl.save_config(app, runtime.descriptor_path)
        except ExternalCommandError as e:
            if e.is_cancelled:
                raise
            raise NuxflyError(
                f"Failed to import app configuration: {e.message}",
                "Make sure the app exists and you have access to it",
                exit_code=e.exit_code,
            ) from e
        self.logger.success(f"Imported configuration to {runtime.descriptor_path.name}")

        show_summary(
            "Next steps",
            [
                f"1. Review {runtime.descriptor_path.name}",
                "2. Update the nuxfly section of nuxt.config if needed",
                "3. Run: nuxfly deploy",
            ],
            border_color="green",
            console=self.console,
        )


@click.command(name="import")
@click.option("--app", "-a", help="Existing Fly app to import")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def import_app(app, verbose):
    """
    Import the configuration of an existing Fly.io app

    \b
    Examples:
      nuxfly import --app my-app
      NUXFLY_ENV=staging nuxfly import --app my-app-staging
    """
    cmd = ImportCommand(app=app, verbose=verbose)
    cmd.run()
