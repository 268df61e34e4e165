"""
Deployment Artifact Service

Writes rendered templates into the project: the fly.toml descriptor at the
project root, .dockerignore, and the image inputs under .nuxfly/.
"""

from pathlib import Path
from typing import Optional

from nuxfly.core.template_generator import (
    DockerfileOptions,
    DrizzlePackageOptions,
    TemplateGenerator,
)
from nuxfly.logger import DeployLogger
from nuxfly.models.config import ResolvedConfig
from nuxfly.utils import FileUtils, ProjectUtils


class ArtifactService:
    """
    Generates deployment files for a project.

    Responsibilities:
    - Descriptor (fly.toml / fly.<env>.toml), with a .backup of the old file
    - Dockerfile and .dockerignore
    - Litestream config, start script and drizzle migration package
    """

    def __init__(self, config: ResolvedConfig, logger: Optional[DeployLogger] = None):
        """
        Initialize artifact service.

        Args:
            config: Resolved configuration (runtime paths are required)
            logger: Logger for written-file records
        """
        self.config = config
        self.logger = logger
        self.cwd = config.runtime.cwd
        self.nuxfly_dir = config.runtime.nuxfly_dir

    def _written(self, path: Path) -> Path:
        if self.logger:
            self.logger.success(f"Generated {self._display(path)}")
        return path

    def _display(self, path: Path) -> str:
        try:
            return str(path.relative_to(self.cwd))
        except ValueError:
            return str(path)

    def write_descriptor(self, config: Optional[ResolvedConfig] = None) -> Path:
        """Render and atomically write the active descriptor, backing up any existing file."""
        config = config or self.config
        path = config.runtime.descriptor_path
        FileUtils.backup_file(path)
        FileUtils.atomic_write(path, TemplateGenerator.generate_fly_toml(config))
        return self._written(path)

    def write_dockerfile(self, prebuilt: bool = True) -> Path:
        options = DockerfileOptions(
            package_manager=ProjectUtils.detect_package_manager(self.cwd),
            prebuilt=prebuilt,
        )
        path = FileUtils.write_file(
            self.nuxfly_dir / "Dockerfile", TemplateGenerator.generate_dockerfile(options)
        )
        return self._written(path)

    def write_dockerignore(self, prebuilt: bool = True) -> Path:
        path = FileUtils.write_file(
            self.cwd / ".dockerignore",
            TemplateGenerator.generate_dockerignore(prebuilt=prebuilt),
        )
        return self._written(path)

    def write_support_files(self) -> list[Path]:
        """Write litestream.yml, start.sh, drizzle.config.ts and package.json into .nuxfly."""
        FileUtils.ensure_nuxfly_dir(self.cwd)
        written = [
            FileUtils.write_file(
                self.nuxfly_dir / "litestream.yml",
                TemplateGenerator.generate_litestream_config(),
            ),
            FileUtils.write_file(
                self.nuxfly_dir / "start.sh",
                TemplateGenerator.generate_start_script(),
                mode=0o755,
            ),
            FileUtils.write_file(
                self.nuxfly_dir / "drizzle.config.ts",
                TemplateGenerator.generate_drizzle_config(),
            ),
            FileUtils.write_file(
                self.nuxfly_dir / "package.json",
                TemplateGenerator.generate_drizzle_package_json(
                    DrizzlePackageOptions(
                        project_package=ProjectUtils.read_package_json(self.cwd)
                    )
                ),
            ),
        ]
        return [self._written(path) for path in written]

    def write_image_files(self, prebuilt: bool = True) -> list[Path]:
        """Dockerfile, .dockerignore and every support file."""
        FileUtils.ensure_nuxfly_dir(self.cwd)
        return [
            self.write_dockerfile(prebuilt),
            self.write_dockerignore(prebuilt),
            *self.write_support_files(),
        ]
