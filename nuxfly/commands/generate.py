"""nuxfly - Generate command"""

import click

from nuxfly.base import ProjectCommand
from nuxfly.exceptions import NuxflyError
from nuxfly.services import ArtifactService, BuildService
from nuxfly.ui_components import show_summary


class GenerateCommand(ProjectCommand):
    """Generate fly.toml and every file the container image needs."""

    command_name = "generate"

    def __init__(self, build: bool = False, verbose: bool = False, **kwargs):
        super().__init__(verbose=verbose, **kwargs)
        self.build = build

    def execute(self) -> None:
        runtime = self.config.runtime
        self.show_header(
            title="Generate",
            app=self.config.app,
            environment=runtime.environment,
            details={"Build": "Yes" if self.build else "No"},
        )

        self.validator.validate_command("generate")
        if not runtime.has_dist and not self.build:
            raise NuxflyError(
                "No .output directory found! Please build your Nuxt application first.",
                "Run your build script or pass --build",
            )

        build = BuildService(self.cwd, self.logger)
        if self.build:
            self.logger.step("Building application")
            build.build_application()

        self.logger.step("Generating deployment files")
        artifacts = ArtifactService(self.config, self.logger)
        written = [artifacts.write_descriptor()]
        written.extend(artifacts.write_image_files(prebuilt=True))

        self.logger.step("Staging build output")
        build.copy_drizzle_migrations(
            self.nuxfly_dir, self.config.features.get("migrationsDir")
        )
        if self.build:
            build.install_nuxfly_dependencies(self.nuxfly_dir)
        dist_copy = build.copy_dist(self.nuxfly_dir)

        lines = [f"📄 {self._relative(path)}" for path in written]
        lines.append(
            f"📁 {self._relative(dist_copy)} (application {'built' if self.build else 'not rebuilt'})"
        )
        show_summary("Generated files", lines, console=self.console)

    def _relative(self, path) -> str:
        try:
            return str(path.relative_to(self.cwd))
        except ValueError:
            return str(path)


@click.command(name="generate")
@click.option("--build", is_flag=True, help="Build the application before generating")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def generate(build, verbose):
    """
    Generate fly.toml, Dockerfile and .nuxfly deployment files

    \b
    Examples:
      nuxfly generate
      nuxfly generate --build
      NUXFLY_ENV=staging nuxfly generate
    """
    cmd = GenerateCommand(build=build, verbose=verbose)
    cmd.run()
