"""nuxfly - Studio command"""

import shutil
import subprocess
from pathlib import Path
from typing import Optional

import click

from nuxfly.base import ProjectCommand
from nuxfly.constants import (
    DEFAULT_REMOTE_DB_PORT,
    DEFAULT_STUDIO_PORT,
    TUNNEL_READY_MARKERS,
    TUNNEL_READY_TIMEOUT,
)
from nuxfly.core.validator import validate_port
from nuxfly.exceptions import (
    ExternalCommandError,
    NuxflyError,
    PermissionDeniedError,
    ToolNotFoundError,
    TunnelTimeoutError,
    exit_status,
)
from nuxfly.process_utils import forward_signals, supervise, wait_for_output
from nuxfly.ui_components import show_summary

DRIZZLE_KIT = "drizzle-kit"


def find_drizzle_kit(cwd: Path) -> str:
    """
    Locate drizzle-kit, preferring the project's own node_modules.

    Raises:
        ToolNotFoundError: If drizzle-kit is not installed
    """
    local = cwd / "node_modules" / ".bin" / DRIZZLE_KIT
    if local.is_file():
        return str(local)
    found = shutil.which(DRIZZLE_KIT)
    if found:
        return found
    raise ToolNotFoundError(
        DRIZZLE_KIT, "Install drizzle-kit: npm install -D drizzle-kit"
    )


def studio_args(port: int, drizzle_config: Optional[str] = None) -> list[str]:
    args = ["studio", "--port", str(port), "--host", "0.0.0.0"]
    if drizzle_config:
        args.extend(["--config", drizzle_config])
    return args


class StudioCommand(ProjectCommand):
    """
    Open Drizzle Studio against the deployed database.

    A `flyctl proxy` tunnel runs in the background while drizzle-kit studio
    runs in the foreground. The tunnel is closed when studio exits or the
    session is interrupted.
    """

    command_name = "studio"

    def __init__(
        self,
        port: int = DEFAULT_STUDIO_PORT,
        remote_port: int = DEFAULT_REMOTE_DB_PORT,
        verbose: bool = False,
        **kwargs,
    ):
        super().__init__(verbose=verbose, **kwargs)
        self.port = port
        self.remote_port = remote_port

    @property
    def drizzle_config(self) -> Optional[str]:
        drizzle = self.config.features.get("drizzle")
        if isinstance(drizzle, dict):
            return drizzle.get("config")
        return None

    def execute(self) -> None:
        validate_port(self.port, "local port")
        validate_port(self.remote_port, "remote port")

        app = self.config.app
        self.show_header(
            title="Studio",
            app=app,
            environment=self.config.runtime.environment,
            details={"Port": self.port, "Remote port": self.remote_port},
        )

        self.logger.step("Validating deployment")
        self.validator.validate_command("studio")
        drizzle_kit = find_drizzle_kit(self.cwd)
        self.logger.debug(f"Using {drizzle_kit}")

        self.logger.step(f"Opening tunnel to {app}")
        tunnel = self.flyctl.start_proxy(self.remote_port, self.remote_port, app)
        with supervise(tunnel):
            ready = wait_for_output(tunnel, TUNNEL_READY_MARKERS, TUNNEL_READY_TIMEOUT)
            if ready is None:
                try:
                    returncode = tunnel.wait(timeout=1)
                except subprocess.TimeoutExpired:
                    returncode = None
                if returncode is not None:
                    raise NuxflyError(
                        f"Tunnel process exited with code {exit_status(returncode)}",
                        "Check that flyctl is installed and you have access to the app",
                    )
                raise TunnelTimeoutError(TUNNEL_READY_TIMEOUT)
            for line in ready:
                self.logger.debug(f"tunnel: {line}")

            show_summary(
                "Secure tunnel established",
                [
                    f"Connected to {app}",
                    f"Remote port: {self.remote_port}",
                    f"Drizzle Studio: http://localhost:{self.port}",
                    "",
                    "Press Ctrl+C to close the tunnel and studio",
                ],
                console=self.console,
            )

            self.logger.step("Launching Drizzle Studio")
            self._run_studio(drizzle_kit)

        self.logger.info("Tunnel closed")

    def _run_studio(self, drizzle_kit: str) -> None:
        args = studio_args(self.port, self.drizzle_config)
        self.logger.log_command(" ".join([DRIZZLE_KIT] + args))
        try:
            process = subprocess.Popen([drizzle_kit] + args, cwd=self.cwd)
        except FileNotFoundError as e:
            raise ToolNotFoundError(DRIZZLE_KIT) from e
        except PermissionError as e:
            raise PermissionDeniedError(drizzle_kit) from e

        with forward_signals(process):
            returncode = process.wait()
        if returncode != 0:
            raise ExternalCommandError("studio", returncode, tool=DRIZZLE_KIT)


@click.command(name="studio")
@click.option("--port", type=int, default=DEFAULT_STUDIO_PORT, show_default=True, help="Local Drizzle Studio port")
@click.option("--remote-port", type=int, default=DEFAULT_REMOTE_DB_PORT, show_default=True, help="Database port on the app")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def studio(port, remote_port, verbose):
    """
    Open Drizzle Studio through a secure tunnel to the app

    \b
    Examples:
      nuxfly studio
      nuxfly studio --port 5000
    """
    cmd = StudioCommand(port=port, remote_port=remote_port, verbose=verbose)
    cmd.run()
