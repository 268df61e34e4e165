"""Descriptor (fly.toml) path resolution and parsing."""

import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from nuxfly.constants import (
    DEFAULT_ENVIRONMENT,
    DEFAULT_VOLUME_SIZE,
    DESCRIPTOR_ENV_GLOB,
    DESCRIPTOR_FILENAME,
    ENV_SELECTOR,
    PRODUCTION_ENVIRONMENTS,
)
from nuxfly.exceptions import ConfigInvalidError, EnvironmentNotSetError


def environment_descriptor_files(cwd: Path) -> list[Path]:
    """List environment-suffixed descriptors (fly.<env>.toml) in a directory."""
    return sorted(Path(cwd).glob(DESCRIPTOR_ENV_GLOB))


def resolve_descriptor_path(
    cwd: Path, environ: Mapping[str, str]
) -> Tuple[Path, str]:
    """
    Resolve the active descriptor path from NUXFLY_ENV.

    Unset or prod/production selects fly.toml. Any other value selects
    fly.<env>.toml. When environment descriptors exist and NUXFLY_ENV is
    unset the choice is ambiguous and an error is raised.

    Args:
        cwd: Project root
        environ: Environment mapping

    Returns:
        Tuple of (descriptor path, environment name)

    Raises:
        EnvironmentNotSetError: If several descriptors exist without a selector
    """
    cwd = Path(cwd)
    selected = (environ.get(ENV_SELECTOR) or "").strip()

    if not selected:
        candidates = environment_descriptor_files(cwd)
        if candidates:
            names = [DESCRIPTOR_FILENAME] if (cwd / DESCRIPTOR_FILENAME).exists() else []
            names.extend(path.name for path in candidates)
            raise EnvironmentNotSetError(names)
        return cwd / DESCRIPTOR_FILENAME, DEFAULT_ENVIRONMENT

    if selected in PRODUCTION_ENVIRONMENTS:
        return cwd / DESCRIPTOR_FILENAME, selected

    return cwd / f"fly.{selected}.toml", selected


def environment_app_name(base_name: str, environment: str) -> str:
    """Suffix an app name with a non-production environment name."""
    if not environment or environment in PRODUCTION_ENVIRONMENTS:
        return base_name
    suffix = f"-{environment}"
    if base_name.endswith(suffix):
        return base_name
    return f"{base_name}{suffix}"


def _memory_from_vm(vm: Dict[str, Any]) -> Optional[str]:
    if "memory" in vm:
        memory = vm["memory"]
        return f"{memory}mb" if isinstance(memory, int) else str(memory)
    if "memory_mb" in vm:
        return f"{vm['memory_mb']}mb"
    return None


def _as_int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigInvalidError(f"{field} must be an integer, got {value!r}", field=field) from e


def parse_descriptor(text: str) -> Dict[str, Any]:
    """
    Parse fly.toml text into a partial configuration.

    Only app, region, memory, cpu_kind, cpus, instances, env and volumes are
    read; keys absent from the file are absent from the result. Mounts
    without `initial_size` get the default volume size.

    Raises:
        ConfigInvalidError: If the text is not valid TOML
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigInvalidError(f"invalid fly.toml: {e}", field="descriptor") from e

    parsed: Dict[str, Any] = {}

    if data.get("app"):
        parsed["app"] = str(data["app"])
    if data.get("primary_region"):
        parsed["region"] = str(data["primary_region"])

    vm = data.get("vm")
    if isinstance(vm, list):
        vm = vm[0] if vm else {}
    if isinstance(vm, dict):
        memory = _memory_from_vm(vm)
        if memory:
            parsed["memory"] = memory
        if vm.get("cpu_kind"):
            parsed["cpu_kind"] = str(vm["cpu_kind"])
        if vm.get("cpus") is not None:
            parsed["cpus"] = _as_int(vm["cpus"], "vm.cpus")

    scaling = data.get("scaling")
    if isinstance(scaling, dict):
        instances = {}
        if "min_machines_running" in scaling:
            instances["min"] = _as_int(scaling["min_machines_running"], "scaling.min_machines_running")
        if "max_machines_running" in scaling:
            instances["max"] = _as_int(scaling["max_machines_running"], "scaling.max_machines_running")
        if instances:
            parsed["instances"] = instances

    env = data.get("env")
    if isinstance(env, dict):
        parsed["env"] = dict(env)

    mounts = data.get("mounts")
    if isinstance(mounts, dict):
        mounts = [mounts]
    if isinstance(mounts, list):
        parsed["volumes"] = [
            {
                "name": mount.get("source", ""),
                "mount": mount.get("destination", ""),
                "size": str(mount.get("initial_size", DEFAULT_VOLUME_SIZE)),
            }
            for mount in mounts
            if isinstance(mount, dict)
        ]

    return parsed
