"""Configuration management for nuxfly projects"""

import json
import os
import re
import subprocess
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from dotenv import dotenv_values

from nuxfly.constants import (
    DEFAULT_CPU_KIND,
    DEFAULT_CPUS,
    DEFAULT_ENV,
    DEFAULT_MAX_INSTANCES,
    DEFAULT_MEMORY,
    DEFAULT_MIN_INSTANCES,
    DEFAULT_REGION,
    DIST_DIR_NAME,
    DOTENV_FILE,
    ENV_APP,
    ENV_MEMORY,
    ENV_REGION,
    NUXFLY_DIR_NAME,
    SIZE_PATTERN,
    TOKEN_ENV_VARS,
)
from nuxfly.core.descriptor import parse_descriptor, resolve_descriptor_path
from nuxfly.exceptions import ConfigInvalidError, NotRecognizedProjectError
from nuxfly.models.config import Instances, ResolvedConfig, RuntimeInfo, Volume
from nuxfly.utils import FileUtils, ProjectUtils

_SIZE_RE = re.compile(SIZE_PATTERN, re.IGNORECASE)

NUXT_CONFIG_SCRIPT = """
import { loadNuxtConfig } from '@nuxt/kit'
const config = await loadNuxtConfig({ cwd: process.cwd() })
process.stdout.write('\\n' + JSON.stringify(config.nuxfly || {}) + '\\n')
"""


class FrameworkConfigLoader:
    """
    Reads the `nuxfly` section of the Nuxt config through Nuxt's own loader.

    Runs a short node script using @nuxt/kit. Any failure (node missing,
    @nuxt/kit not installed, invalid output) yields an empty section.
    """

    def __init__(self, timeout: int = 60, debug: Optional[Callable[[str], None]] = None):
        self.timeout = timeout
        self.debug = debug or (lambda _message: None)

    def load(self, cwd: Path) -> Dict[str, Any]:
        try:
            result = subprocess.run(
                ["node", "--input-type=module", "-e", NUXT_CONFIG_SCRIPT],
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.debug(f"Could not load Nuxt config: {e}")
            return {}

        if result.returncode != 0:
            self.debug(f"Could not load Nuxt config: {result.stderr.strip()}")
            return {}

        # Nuxt may print its own output first; the JSON is the last line
        for line in reversed(result.stdout.splitlines()):
            line = line.strip()
            if line.startswith("{"):
                try:
                    data = json.loads(line)
                except ValueError:
                    break
                return data if isinstance(data, dict) else {}

        self.debug("Nuxt config loader produced no JSON output")
        return {}

    __call__ = load


def validate_config(config: ResolvedConfig) -> ResolvedConfig:
    """
    Validate configuration invariants.

    Raises:
        ConfigInvalidError: Naming the first offending field
    """
    instances = config.instances
    if not isinstance(instances.min, int) or instances.min < 0:
        raise ConfigInvalidError("instances.min must be a non-negative integer", "instances.min")
    if not isinstance(instances.max, int) or instances.max < 1:
        raise ConfigInvalidError("instances.max must be at least 1", "instances.max")
    if instances.min > instances.max:
        raise ConfigInvalidError(
            f"instances.min ({instances.min}) cannot be greater than instances.max ({instances.max})",
            "instances",
        )

    if not _SIZE_RE.match(str(config.memory)):
        raise ConfigInvalidError(
            f"memory must look like '512mb' or '1gb', got '{config.memory}'",
            "memory",
        )

    for index, volume in enumerate(config.volumes):
        if not volume.name:
            raise ConfigInvalidError(f"volumes[{index}].name is required", f"volumes[{index}].name")
        if not volume.mount or not volume.mount.startswith("/"):
            raise ConfigInvalidError(
                f"volumes[{index}].mount must be an absolute path, got '{volume.mount}'",
                f"volumes[{index}].mount",
            )
        if not _SIZE_RE.match(str(volume.size)):
            raise ConfigInvalidError(
                f"volumes[{index}].size must look like '1gb', got '{volume.size}'",
                f"volumes[{index}].size",
            )

    if not isinstance(config.secrets, list):
        raise ConfigInvalidError("secrets must be a list", "secrets")

    return config


class ConfigLoader:
    """Builds the ResolvedConfig for one CLI invocation."""

    def __init__(
        self,
        cwd: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        framework_loader: Optional[Callable[[Path], Dict[str, Any]]] = None,
    ):
        """
        Initialize config loader.

        Args:
            cwd: Working directory (defaults to the process cwd)
            environ: Process environment (defaults to os.environ)
            framework_loader: Callable returning the Nuxt `nuxfly` section
        """
        self.cwd = Path(cwd or os.getcwd()).resolve()
        self._process_environ = dict(os.environ if environ is None else environ)
        self.framework_loader = framework_loader or FrameworkConfigLoader()

    @property
    def environ(self) -> Dict[str, str]:
        """Project .env values overlaid by the real process environment."""
        dotenv_path = self.cwd / DOTENV_FILE
        merged: Dict[str, str] = {}
        if dotenv_path.is_file():
            merged.update(
                {k: v for k, v in dotenv_values(dotenv_path).items() if v is not None}
            )
        merged.update(self._process_environ)
        return merged

    def _defaults(self) -> Dict[str, Any]:
        return {
            "app": None,
            "region": DEFAULT_REGION,
            "memory": DEFAULT_MEMORY,
            "cpu_kind": DEFAULT_CPU_KIND,
            "cpus": DEFAULT_CPUS,
            "instances": {"min": DEFAULT_MIN_INSTANCES, "max": DEFAULT_MAX_INSTANCES},
            "env": dict(DEFAULT_ENV),
            "volumes": [],
            "secrets": [],
        }

    def _apply_overrides(self, values: Dict[str, Any], environ: Mapping[str, str]) -> None:
        if environ.get(ENV_APP):
            values["app"] = environ[ENV_APP]
        if environ.get(ENV_REGION):
            values["region"] = environ[ENV_REGION]
        if environ.get(ENV_MEMORY):
            values["memory"] = environ[ENV_MEMORY]

    def _build(self, values: Dict[str, Any], **extra: Any) -> ResolvedConfig:
        instances = values.get("instances") or {}
        try:
            volumes = [
                Volume(
                    name=str(volume.get("name", "")),
                    mount=str(volume.get("mount", "")),
                    size=str(volume.get("size", "")),
                )
                for volume in values.get("volumes") or []
            ]
        except AttributeError as e:
            raise ConfigInvalidError("volumes must be a list of tables", "volumes") from e

        return ResolvedConfig(
            app=values.get("app"),
            region=values.get("region") or DEFAULT_REGION,
            memory=str(values.get("memory")),
            cpu_kind=values.get("cpu_kind") or DEFAULT_CPU_KIND,
            cpus=values.get("cpus") or DEFAULT_CPUS,
            instances=Instances(
                min=instances.get("min", DEFAULT_MIN_INSTANCES),
                max=instances.get("max", DEFAULT_MAX_INSTANCES),
            ),
            env=dict(values.get("env") or {}),
            volumes=volumes,
            secrets=values.get("secrets") if values.get("secrets") is not None else [],
            **extra,
        )

    def load(self) -> ResolvedConfig:
        """
        Load, merge and validate configuration.

        Order: defaults, then fly.toml, then FLY_APP/FLY_REGION/FLY_MEMORY.

        Returns:
            Validated ResolvedConfig with fresh runtime paths

        Raises:
            NotRecognizedProjectError: If cwd has no nuxt.config file
            EnvironmentNotSetError: If several descriptors exist without NUXFLY_ENV
            ConfigInvalidError: If the merged values violate an invariant
        """
        if not ProjectUtils.is_nuxt_project(self.cwd):
            raise NotRecognizedProjectError(str(self.cwd))

        environ = self.environ
        features = self.framework_loader(self.cwd) or {}

        descriptor_path, environment = resolve_descriptor_path(self.cwd, environ)
        descriptor_exists = descriptor_path.is_file()

        values = self._defaults()
        if descriptor_exists:
            values.update(parse_descriptor(FileUtils.read_file(descriptor_path)))

        self._apply_overrides(values, environ)

        runtime = RuntimeInfo(
            cwd=self.cwd,
            nuxfly_dir=self.cwd / NUXFLY_DIR_NAME,
            descriptor_path=descriptor_path,
            descriptor_exists=descriptor_exists,
            dist_path=self.cwd / DIST_DIR_NAME,
            environment=environment,
        )

        config = self._build(
            values,
            features=features if isinstance(features, dict) else {},
            has_token=any(environ.get(name) for name in TOKEN_ENV_VARS),
            runtime=runtime,
        )
        return validate_config(config)

    def reload(self, config: ResolvedConfig) -> ResolvedConfig:
        """Recompute runtime paths after the filesystem changed (e.g. descriptor written)."""
        runtime = config.runtime
        if runtime is None:
            return config
        return replace(
            config,
            runtime=replace(
                runtime, descriptor_exists=runtime.descriptor_path.is_file()
            ),
        )


def load_config(
    cwd: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> ResolvedConfig:
    """Convenience wrapper: ConfigLoader(cwd, environ).load()."""
    return ConfigLoader(cwd, environ).load()
