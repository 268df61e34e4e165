from __future__ import annotations

from pathlib import Path

import pytest

from nuxfly.core.descriptor import (
    environment_app_name,
    parse_descriptor,
    resolve_descriptor_path,
)
from nuxfly.exceptions import ConfigInvalidError, EnvironmentNotSetError


def test_unset_environment_selects_root_descriptor(tmp_path: Path) -> None:
    path, environment = resolve_descriptor_path(tmp_path, {})

    assert path == tmp_path / "fly.toml"
    assert environment == "prod"


@pytest.mark.parametrize("value", ["prod", "production"])
def test_production_names_select_root_descriptor(tmp_path: Path, value: str) -> None:
    (tmp_path / "fly.staging.toml").write_text('app = "x-staging"\n')

    path, environment = resolve_descriptor_path(tmp_path, {"NUXFLY_ENV": value})

    assert path == tmp_path / "fly.toml"
    assert environment == value


def test_named_environment_selects_suffixed_descriptor(tmp_path: Path) -> None:
    path, environment = resolve_descriptor_path(tmp_path, {"NUXFLY_ENV": "staging"})

    assert path == tmp_path / "fly.staging.toml"
    assert environment == "staging"


def test_environment_descriptors_without_selector_are_ambiguous(tmp_path: Path) -> None:
    (tmp_path / "fly.toml").write_text('app = "x"\n')
    (tmp_path / "fly.staging.toml").write_text('app = "x-staging"\n')

    with pytest.raises(EnvironmentNotSetError) as exc_info:
        resolve_descriptor_path(tmp_path, {})

    assert exc_info.value.candidates == ["fly.toml", "fly.staging.toml"]
    assert exc_info.value.exit_code == 2


def test_blank_selector_counts_as_unset(tmp_path: Path) -> None:
    path, _ = resolve_descriptor_path(tmp_path, {"NUXFLY_ENV": "  "})

    assert path.name == "fly.toml"


@pytest.mark.parametrize(
    ("base", "environment", "expected"),
    [
        ("shop", "prod", "shop"),
        ("shop", "production", "shop"),
        ("shop", "staging", "shop-staging"),
        ("shop-staging", "staging", "shop-staging"),
    ],
)
def test_environment_app_name(base: str, environment: str, expected: str) -> None:
    assert environment_app_name(base, environment) == expected


def test_parse_descriptor_reads_known_keys() -> None:
    parsed = parse_descriptor(
        """
app = "demo"
primary_region = "ams"

[vm]
  memory = "1gb"
  cpu_kind = "performance"
  cpus = 2

[scaling]
  min_machines_running = 0
  max_machines_running = 5

[env]
  NODE_ENV = "production"
  NUXT_PUBLIC_SITE = "demo"

[[mounts]]
  source = "sqlite_data"
  destination = "/data"
  initial_size = "3gb"
"""
    )

    assert parsed == {
        "app": "demo",
        "region": "ams",
        "memory": "1gb",
        "cpu_kind": "performance",
        "cpus": 2,
        "instances": {"min": 0, "max": 5},
        "env": {"NODE_ENV": "production", "NUXT_PUBLIC_SITE": "demo"},
        "volumes": [{"name": "sqlite_data", "mount": "/data", "size": "3gb"}],
    }


def test_parse_descriptor_accepts_vm_array_and_integer_memory() -> None:
    parsed = parse_descriptor(
        """
[[vm]]
  memory = 1024
  cpus = 1
"""
    )

    assert parsed["memory"] == "1024mb"
    assert parsed["cpus"] == 1


def test_parse_descriptor_accepts_memory_mb() -> None:
    assert parse_descriptor("[vm]\nmemory_mb = 256\n")["memory"] == "256mb"


def test_parse_descriptor_single_mount_table_defaults_size() -> None:
    parsed = parse_descriptor(
        """
[mounts]
  source = "data"
  destination = "/data"
"""
    )

    assert parsed["volumes"] == [{"name": "data", "mount": "/data", "size": "1gb"}]


def test_parse_descriptor_omits_absent_keys() -> None:
    assert parse_descriptor('app = "demo"\n') == {"app": "demo"}


def test_parse_descriptor_rejects_invalid_toml() -> None:
    with pytest.raises(ConfigInvalidError) as exc_info:
        parse_descriptor("app = ")

    assert exc_info.value.exit_code == 3


@pytest.mark.parametrize(
    ("text", "field"),
    [
        ('[vm]\ncpus = "two"\n', "vm.cpus"),
        ("[vm]\ncpus = [1]\n", "vm.cpus"),
        ('[scaling]\nmin_machines_running = "one"\n', "scaling.min_machines_running"),
        ("[scaling]\nmax_machines_running = {}\n", "scaling.max_machines_running"),
    ],
)
def test_parse_descriptor_rejects_non_integer_counts(text: str, field: str) -> None:
    with pytest.raises(ConfigInvalidError) as exc_info:
        parse_descriptor(text)

    assert exc_info.value.field == field
    assert exc_info.value.exit_code == 3
