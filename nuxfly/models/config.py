"""
Configuration Models

The resolved configuration for one CLI invocation: defaults merged with the
fly.toml descriptor and environment overrides, plus runtime paths.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from nuxfly.constants import (
    DEFAULT_CPU_KIND,
    DEFAULT_CPUS,
    DEFAULT_ENVIRONMENT,
    DEFAULT_MAX_INSTANCES,
    DEFAULT_MEMORY,
    DEFAULT_MIN_INSTANCES,
    DEFAULT_REGION,
)


@dataclass(frozen=True)
class Instances:
    """Machine count bounds."""

    min: int = DEFAULT_MIN_INSTANCES
    max: int = DEFAULT_MAX_INSTANCES


@dataclass(frozen=True)
class Volume:
    """A persistent volume mounted into the app machine."""

    name: str
    mount: str
    size: str


@dataclass(frozen=True)
class RuntimeInfo:
    """Filesystem facts computed at load time. Recomputed on every load."""

    cwd: Path
    nuxfly_dir: Path
    descriptor_path: Path
    descriptor_exists: bool
    dist_path: Path
    environment: str = DEFAULT_ENVIRONMENT

    @property
    def has_dist(self) -> bool:
        """Check if the Nuxt build output exists."""
        return self.dist_path.is_dir()

    @property
    def is_production(self) -> bool:
        """Check if the default (unsuffixed) descriptor is active."""
        return self.descriptor_path.name == "fly.toml"


@dataclass(frozen=True)
class ResolvedConfig:
    """Merged configuration. Treat as immutable; use dataclasses.replace to derive."""

    app: Optional[str] = None
    region: str = DEFAULT_REGION
    memory: str = DEFAULT_MEMORY
    cpu_kind: str = DEFAULT_CPU_KIND
    cpus: int = DEFAULT_CPUS
    instances: Instances = field(default_factory=Instances)
    env: Dict[str, Any] = field(default_factory=dict)
    volumes: list[Volume] = field(default_factory=list)
    secrets: list[str] = field(default_factory=list)
    features: Dict[str, Any] = field(default_factory=dict)
    has_token: bool = False
    runtime: Optional[RuntimeInfo] = None

    @property
    def descriptor_path(self) -> Optional[Path]:
        return self.runtime.descriptor_path if self.runtime else None

    @property
    def descriptor_exists(self) -> bool:
        return bool(self.runtime and self.runtime.descriptor_exists)

    def feature_enabled(self, flag: str) -> bool:
        """
        Check a nuxfly feature flag from the Nuxt config.

        Args:
            flag: Flag name (litestream, publicStorage, privateStorage)

        Returns:
            True if the flag is set to a truthy value
        """
        return bool(self.features.get(flag))

    def __repr__(self) -> str:
        return f"ResolvedConfig(app={self.app}, region={self.region}, memory={self.memory})"
