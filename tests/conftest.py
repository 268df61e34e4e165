"""Shared test fixtures for nuxfly tests."""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from nuxfly.core.config_loader import ConfigLoader
from tests.fakes.flyctl import FakeFlyctl


class FlyctlRecorder:
    """Factory for FakeFlyctl instances sharing one call log and response table."""

    def __init__(self, responses: dict | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[list[str]] = []
        self.cwds: list[Path | None] = []
        self.streamed: list[list[str]] = []
        self.instances: list[FakeFlyctl] = []

    def __call__(self, config) -> FakeFlyctl:
        fake = FakeFlyctl(config)
        fake.responses = self.responses
        fake.calls = self.calls
        fake.cwds = self.cwds
        fake.streamed = self.streamed
        self.instances.append(fake)
        return fake

    def find_calls(self, *prefix: str) -> list[list[str]]:
        return [call for call in self.calls if call[: len(prefix)] == list(prefix)]


@pytest.fixture
def nuxt_project(tmp_path: Path) -> Path:
    """A minimal Nuxt project directory."""
    project = tmp_path / "my-app"
    project.mkdir()
    (project / "nuxt.config.ts").write_text("export default defineNuxtConfig({})\n")
    (project / "package.json").write_text(
        json.dumps(
            {
                "name": "my-app",
                "scripts": {"build": "nuxt build"},
                "dependencies": {"drizzle-orm": "^0.40.0"},
                "devDependencies": {"drizzle-kit": "^0.30.1"},
            }
        )
    )
    return project


@pytest.fixture
def built_project(nuxt_project: Path) -> Path:
    """A Nuxt project with build output in .output."""
    server = nuxt_project / ".output" / "server"
    public = nuxt_project / ".output" / "public"
    server.mkdir(parents=True)
    public.mkdir(parents=True)
    (server / "index.mjs").write_text("export default {}\n")
    (public / "favicon.ico").write_text("icon")
    return nuxt_project


@pytest.fixture
def console() -> Console:
    """Console writing into a buffer; read it back with console.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def make_loader():
    """Build a ConfigLoader with an isolated environment and fixed Nuxt features."""

    def _make(
        cwd: Path, environ: dict[str, str] | None = None, features: dict[str, Any] | None = None
    ) -> ConfigLoader:
        return ConfigLoader(cwd, environ or {}, framework_loader=lambda _cwd: dict(features or {}))

    return _make


@pytest.fixture
def flyctl_recorder() -> FlyctlRecorder:
    return FlyctlRecorder()


@pytest.fixture
def command_factory(make_loader, console, flyctl_recorder):
    """
    Build a command wired to a temp project, a buffered console and the fake flyctl.

    Usage: command_factory(DeployCommand, project, features={...}, strategy="rolling")
    """

    def _make(command_cls, project: Path, environ=None, features=None, **kwargs):
        cmd = command_cls(
            config_loader=make_loader(project, environ, features),
            console=console,
            **kwargs,
        )
        cmd.create_flyctl = flyctl_recorder
        return cmd

    return _make

