"""
Template Generator

Renders the deployment artifacts nuxfly writes into a project: Dockerfile,
.dockerignore, fly.toml, litestream.yml, start.sh and the drizzle migration
package. Rendering is pure; callers decide where the text goes.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from nuxfly.constants import (
    DEFAULT_NODE_VERSION,
    DRIZZLE_KIT_DEFAULT_VERSION,
    DRIZZLE_ORM_DEFAULT_VERSION,
    LITESTREAM_RETENTION,
    LITESTREAM_SNAPSHOT_INTERVAL,
    LITESTREAM_SYNC_INTERVAL,
    LITESTREAM_VERSION,
    SQLITE_DATABASE_PATH,
)
from nuxfly.models.config import ResolvedConfig

STUBS_DIR = Path(__file__).resolve().parent.parent / "stubs"

DOCKERFILE_PATH = ".nuxfly/Dockerfile"
INTERNAL_PORT = 3000

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")

PACKAGE_MANAGER_COMMANDS = {
    "pnpm": {
        "lockfile": "pnpm-lock.yaml",
        "install": "npm install -g pnpm && pnpm install --frozen-lockfile",
        "build": "pnpm build",
    },
    "yarn": {
        "lockfile": "yarn.lock",
        "install": "yarn install --frozen-lockfile",
        "build": "yarn build",
    },
    "bun": {
        "lockfile": "bun.lockb",
        "install": "npm install -g bun && bun install --frozen-lockfile",
        "build": "bun run build",
    },
    "npm": {
        "lockfile": "",
        "install": "npm ci",
        "build": "npm run build",
    },
}


def toml_value(value: Any) -> str:
    """Render a scalar as a TOML value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(str(value), ensure_ascii=False)


def toml_key(key: str) -> str:
    """Render a TOML key, quoting it when it is not a bare key."""
    key = str(key)
    return key if _BARE_KEY.match(key) else json.dumps(key, ensure_ascii=False)


@dataclass
class DockerfileOptions:
    """Options for the container build file."""

    node_version: str = DEFAULT_NODE_VERSION
    package_manager: str = "npm"
    litestream_version: str = LITESTREAM_VERSION
    prebuilt: bool = True


@dataclass
class LitestreamOptions:
    """Backup daemon tuning. Defaults: sync 30s, retention 96h, snapshots 2h."""

    database_path: str = SQLITE_DATABASE_PATH
    sync_interval: str = LITESTREAM_SYNC_INTERVAL
    retention: str = LITESTREAM_RETENTION
    snapshot_interval: str = LITESTREAM_SNAPSHOT_INTERVAL


@dataclass
class StartScriptOptions:
    database_path: str = SQLITE_DATABASE_PATH
    migrations_dir: str = "/app/dist/db/"
    migrate_command: str = "npx drizzle-kit migrate"
    litestream_config: str = "/etc/litestream.yml"
    app_command: str = "node dist/index.mjs"
    app_dir: str = "/app"


@dataclass
class DrizzlePackageOptions:
    drizzle_kit_version: Optional[str] = None
    drizzle_orm_version: Optional[str] = None
    project_package: Dict[str, Any] = field(default_factory=dict)


class TemplateGenerator:
    """Renders nuxfly stubs with Jinja2."""

    _environment: Optional[Environment] = None

    @classmethod
    def environment(cls) -> Environment:
        if cls._environment is None:
            env = Environment(
                loader=FileSystemLoader(str(STUBS_DIR)),
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=True,
                undefined=StrictUndefined,
                autoescape=False,
            )
            env.filters["toml"] = toml_value
            env.filters["toml_key"] = toml_key
            cls._environment = env
        return cls._environment

    @classmethod
    def render(cls, stub_name: str, **context: Any) -> str:
        """
        Render a stub from the stubs directory.

        Args:
            stub_name: File name under stubs/ (e.g. 'fly.toml.j2')
            **context: Template variables

        Returns:
            Rendered text
        """
        return cls.environment().get_template(stub_name).render(**context)

    @classmethod
    def generate_dockerfile(cls, options: Optional[DockerfileOptions] = None) -> str:
        """
        Generate the Dockerfile.

        The prebuilt variant copies .nuxfly/.output; otherwise the image installs
        dependencies and builds with the detected package manager.
        """
        options = options or DockerfileOptions()
        commands = PACKAGE_MANAGER_COMMANDS.get(
            options.package_manager, PACKAGE_MANAGER_COMMANDS["npm"]
        )
        return cls.render(
            "Dockerfile.j2",
            node_version=options.node_version,
            package_manager=options.package_manager,
            litestream_version=options.litestream_version,
            prebuilt=options.prebuilt,
            lockfile=commands["lockfile"],
            install_command=commands["install"],
            build_command=commands["build"],
        )

    @classmethod
    def generate_dockerignore(
        cls, prebuilt: bool = True, extra_entries: Sequence[str] = ()
    ) -> str:
        return cls.render(
            "dockerignore.j2", prebuilt=prebuilt, extra_entries=list(extra_entries)
        )

    @classmethod
    def generate_fly_toml(cls, config: ResolvedConfig) -> str:
        """
        Generate the fly.toml descriptor.

        `parse_descriptor` recovers app, region, memory, cpu_kind, cpus,
        instance bounds, env and volumes from this output. Services, health
        checks, processes and the build section are fixed and not read back.
        """
        return cls.render(
            "fly.toml.j2",
            app=config.app,
            region=config.region,
            dockerfile=DOCKERFILE_PATH,
            internal_port=INTERNAL_PORT,
            memory=config.memory,
            cpu_kind=config.cpu_kind,
            cpus=config.cpus,
            instances=config.instances,
            env=config.env,
            volumes=config.volumes,
        )

    @classmethod
    def generate_litestream_config(
        cls, options: Optional[LitestreamOptions] = None
    ) -> str:
        options = options or LitestreamOptions()
        return cls.render(
            "litestream.yml.j2",
            database_path=options.database_path,
            meta_path=str(Path(options.database_path).with_suffix(".litestream-meta")),
            sync_interval=options.sync_interval,
            retention=options.retention,
            snapshot_interval=options.snapshot_interval,
        )

    @classmethod
    def generate_start_script(cls, options: Optional[StartScriptOptions] = None) -> str:
        options = options or StartScriptOptions()
        return cls.render(
            "start.sh.j2",
            database_path=options.database_path,
            migrations_dir=options.migrations_dir,
            migrate_command=options.migrate_command,
            litestream_config=options.litestream_config,
            app_command=options.app_command,
            app_dir=options.app_dir,
        )

    @classmethod
    def generate_drizzle_config(cls, database_path: str = SQLITE_DATABASE_PATH) -> str:
        return cls.render("drizzle.config.ts.j2", database_path=database_path)

    @staticmethod
    def drizzle_versions(project_package: Dict[str, Any]) -> tuple[str, str]:
        """
        Read drizzle-kit/drizzle-orm versions from a project package.json.

        Returns:
            Tuple of (drizzle_kit_version, drizzle_orm_version)
        """
        dependencies = {
            **(project_package.get("dependencies") or {}),
            **(project_package.get("devDependencies") or {}),
        }
        return (
            dependencies.get("drizzle-kit", DRIZZLE_KIT_DEFAULT_VERSION),
            dependencies.get("drizzle-orm", DRIZZLE_ORM_DEFAULT_VERSION),
        )

    @classmethod
    def generate_drizzle_package_json(
        cls, options: Optional[DrizzlePackageOptions] = None
    ) -> str:
        """Generate the standalone package.json used to run migrations in the image."""
        options = options or DrizzlePackageOptions()
        kit_version, orm_version = cls.drizzle_versions(options.project_package)
        manifest = {
            "name": "nuxfly-db",
            "private": True,
            "scripts": {"migrate": "drizzle-kit migrate"},
            "dependencies": {
                "drizzle-kit": options.drizzle_kit_version or kit_version,
                "drizzle-orm": options.drizzle_orm_version or orm_version,
            },
        }
        return json.dumps(manifest, indent=2) + "\n"
