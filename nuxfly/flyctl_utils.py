"""
flyctl Utilities

Adapter around the flyctl command-line tool: argument construction with
--config/--app injection, captured and streaming execution, and the typed
error mapping for spawn failures and non-zero exits.
"""

import json
import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from nuxfly.constants import (
    FLYCTL_EXECUTABLE,
    PUBLIC_URL_SECRET,
    PUBLIC_URL_TEMPLATE,
    SELF_MANAGED_COMMANDS,
    TOKEN_ENV_VARS,
)
from nuxfly.core.output_parsers import (
    parse_owner,
    parse_secret_names,
    volume_listed,
)
from nuxfly.exceptions import (
    ExternalCommandError,
    NuxflyError,
    PermissionDeniedError,
    ToolNotFoundError,
)
from nuxfly.logger import DeployLogger
from nuxfly.models.config import ResolvedConfig
from nuxfly.models.results import ExecutionResult
from nuxfly.process_utils import forward_signals


def _has_flag(args: Sequence[str], long_flag: str, short_flag: str) -> bool:
    for arg in args:
        if arg in (long_flag, short_flag):
            return True
        if arg.startswith(long_flag + "=") or arg.startswith(short_flag + "="):
            return True
    return False


def build_flyctl_args(
    command: str, user_args: Sequence[str], config: Optional[ResolvedConfig]
) -> list[str]:
    """
    Build the flyctl argument vector for a command.

    `--config <descriptor>` is added when the descriptor exists and `--app
    <name>` when an app name is known. Neither is added for commands that
    select their own app or descriptor (launch, storage, ...) or when the
    user already passed the flag. Injected flags go before a `--` separator.

    Args:
        command: flyctl command (e.g. 'status', 'secrets')
        user_args: Remaining arguments as given by the user
        config: Resolved configuration, if any

    Returns:
        Argument list starting with the command (executable excluded)
    """
    user_args = list(user_args)
    injected: list[str] = []

    if config is not None and command not in SELF_MANAGED_COMMANDS:
        if config.descriptor_exists and not _has_flag(user_args, "--config", "-c"):
            injected.extend(["--config", str(config.descriptor_path)])
        if config.app and not _has_flag(user_args, "--app", "-a"):
            injected.extend(["--app", config.app])

    if "--" in user_args:
        split = user_args.index("--")
        return [command] + user_args[:split] + injected + user_args[split:]
    return [command] + user_args + injected


def redact_args(args: Sequence[str]) -> list[str]:
    """Mask values in `secrets set KEY=VALUE` so they never reach a log."""
    args = list(args)
    if len(args) < 2 or args[0] != "secrets" or args[1] != "set":
        return args
    redacted = args[:2]
    for arg in args[2:]:
        if "=" in arg and not arg.startswith("-"):
            key = arg.split("=", 1)[0]
            arg = f"{key}=***"
        redacted.append(arg)
    return redacted


class FlyctlManager:
    """Runs flyctl on behalf of nuxfly commands."""

    def __init__(
        self,
        config: Optional[ResolvedConfig] = None,
        logger: Optional[DeployLogger] = None,
        environ: Optional[Mapping[str, str]] = None,
        executable: str = FLYCTL_EXECUTABLE,
    ):
        """
        Initialize flyctl manager.

        Args:
            config: Resolved configuration used for --config/--app injection
            logger: Logger for command and output records
            environ: Parent environment (defaults to os.environ)
            executable: flyctl executable name or path
        """
        self.config = config
        self.logger = logger
        self.environ = dict(os.environ if environ is None else environ)
        self.executable = executable

    @property
    def cwd(self) -> Optional[Path]:
        if self.config is not None and self.config.runtime is not None:
            return self.config.runtime.cwd
        return None

    def child_env(self, extra: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Build the child process environment.

        The first access token found is forwarded as FLY_ACCESS_TOKEN.
        """
        env = dict(self.environ)
        for name in TOKEN_ENV_VARS:
            if self.environ.get(name):
                env["FLY_ACCESS_TOKEN"] = self.environ[name]
                break
        if extra:
            env.update(extra)
        return env

    def _prepare(
        self, command: str, args: Sequence[str], inject: bool
    ) -> list[str]:
        argv = build_flyctl_args(command, args, self.config if inject else None)
        if self.logger:
            self.logger.log_command(
                shlex.join([self.executable] + redact_args(argv))
            )
        return argv

    def _spawn_error(self, error: OSError) -> NuxflyError:
        if isinstance(error, FileNotFoundError):
            return ToolNotFoundError(self.executable)
        if isinstance(error, PermissionError):
            return PermissionDeniedError(self.executable)
        return NuxflyError(f"Failed to run {self.executable}: {error}")

    def execute(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        capture_output: bool = True,
        check: bool = True,
        inject: bool = True,
    ) -> ExecutionResult:
        """
        Run a flyctl command to completion.

        Args:
            command: flyctl command
            args: Command arguments
            cwd: Working directory (defaults to the project root)
            env: Extra environment variables for the child
            capture_output: Capture stdout/stderr instead of inheriting them
            check: Raise ExternalCommandError on non-zero exit
            inject: Apply --config/--app injection

        Returns:
            ExecutionResult object

        Raises:
            ToolNotFoundError: If flyctl is not installed
            ExternalCommandError: If command fails and check=True
        """
        argv = self._prepare(command, args, inject)

        try:
            result = subprocess.run(
                [self.executable] + argv,
                cwd=cwd or self.cwd,
                env=self.child_env(env),
                capture_output=capture_output,
                text=True,
                check=False,
            )
        except OSError as e:
            raise self._spawn_error(e) from e

        exec_result = ExecutionResult(
            returncode=result.returncode,
            stdout=result.stdout if capture_output else "",
            stderr=result.stderr if capture_output else "",
            command=shlex.join([self.executable] + redact_args(argv)),
        )

        if self.logger and capture_output:
            self.logger.log_output(exec_result.stdout, "stdout")
            self.logger.log_output(exec_result.stderr, "stderr")

        if check and exec_result.is_failure:
            raise ExternalCommandError(
                command, exec_result.returncode, exec_result.stderr
            )

        return exec_result

    def stream(
        self,
        command: str,
        args: Sequence[str] = (),
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        inject: bool = True,
    ) -> ExecutionResult:
        """
        Run a flyctl command with inherited stdio for interactive use.

        SIGINT/SIGTERM received while the child runs are forwarded to it.

        Raises:
            ToolNotFoundError: If flyctl is not installed
            ExternalCommandError: If command fails and check=True
        """
        argv = self._prepare(command, args, inject)

        try:
            process = subprocess.Popen(
                [self.executable] + argv,
                cwd=cwd or self.cwd,
                env=self.child_env(env),
            )
        except OSError as e:
            raise self._spawn_error(e) from e

        with forward_signals(process):
            returncode = process.wait()

        exec_result = ExecutionResult(
            returncode=returncode,
            command=shlex.join([self.executable] + redact_args(argv)),
        )
        if check and exec_result.is_failure:
            raise ExternalCommandError(command, returncode)
        return exec_result

    # Helpers

    def check_available(self) -> bool:
        """
        Check that flyctl can be executed.

        Raises:
            ToolNotFoundError: If flyctl is not installed
        """
        try:
            self.execute("version", inject=False)
        except ExternalCommandError:
            return False
        return True

    def whoami(self) -> Optional[str]:
        """Return the logged-in account email, or None if not authenticated."""
        try:
            result = self.execute("auth", ["whoami"], inject=False)
        except ExternalCommandError:
            return None
        return result.stdout.strip() or None

    def check_app_access(self, app: str) -> bool:
        try:
            self.execute("status", ["--app", app], inject=False)
        except ExternalCommandError:
            return False
        return True

    def get_app_info(self, app: str) -> Optional[dict]:
        """Return `flyctl status --json` for an app, or None if unavailable."""
        try:
            result = self.execute("status", ["--app", app, "--json"], inject=False)
        except ExternalCommandError:
            return None
        try:
            return json.loads(result.stdout)
        except ValueError:
            return None

    def get_org_name(self, app: str) -> Optional[str]:
        """Return the organization that owns an app, parsed from `flyctl status`."""
        try:
            result = self.execute("status", ["--app", app], inject=False)
        except ExternalCommandError:
            return None
        return parse_owner(result.stdout)

    def launch(
        self,
        name: str,
        region: str,
        config_path: Optional[Path] = None,
        no_deploy: bool = True,
        extra_args: Sequence[str] = (),
    ) -> ExecutionResult:
        """
        Create the app with `flyctl launch`, reusing the generated descriptor.

        Object storage is provisioned by nuxfly itself, so flyctl's own
        bucket creation is disabled.
        """
        args = [
            "--name",
            name,
            "--region",
            region,
            "--copy-config",
            "--no-object-storage",
            "--ha=false",
        ]
        if no_deploy:
            args.append("--no-deploy")
        if config_path is not None:
            args.extend(["--config", str(config_path)])
        args.extend(extra_args)
        return self.stream("launch", args)

    def deploy(
        self, strategy: Optional[str] = None, extra_args: Sequence[str] = ()
    ) -> ExecutionResult:
        args = []
        if strategy:
            args.extend(["--strategy", strategy])
        args.append("--ha=false")
        args.extend(extra_args)
        return self.stream("deploy", args)

    def save_config(self, app: str, output_path: Path) -> ExecutionResult:
        """Write the deployed app's configuration to a local descriptor."""
        return self.execute(
            "config",
            ["save", "--app", app, "--config", str(output_path)],
            inject=False,
        )

    def _app_args(self, app: Optional[str]) -> list[str]:
        return ["--app", app] if app else []

    def list_secret_names(self, app: Optional[str] = None) -> list[str]:
        result = self.execute("secrets", ["list", "--json"] + self._app_args(app))
        return parse_secret_names(result.stdout)

    def secret_exists(self, name: str, app: Optional[str] = None) -> bool:
        """Check for a secret by name. Listing failures count as absent."""
        try:
            return name in self.list_secret_names(app)
        except ExternalCommandError as e:
            if self.logger:
                self.logger.debug(f"Could not list secrets: {e.message}")
            return False

    def set_secrets(
        self, secrets: Mapping[str, str], app: Optional[str] = None, stage: bool = True
    ) -> ExecutionResult:
        """
        Set deployment secrets.

        Args:
            secrets: Secret name to value
            app: Target app (defaults to the configured app)
            stage: Stage for the next deploy instead of restarting machines
        """
        args = ["set"] + [f"{key}={value}" for key, value in secrets.items()]
        if stage:
            args.append("--stage")
        return self.execute("secrets", args + self._app_args(app))

    def ensure_public_bucket_url_secret(self, app: str) -> bool:
        """
        Set the public bucket URL secret unless it already exists.

        Returns:
            True if the secret was set by this call
        """
        if self.secret_exists(PUBLIC_URL_SECRET, app):
            return False
        self.set_secrets(
            {PUBLIC_URL_SECRET: PUBLIC_URL_TEMPLATE.format(app=app)}, app=app
        )
        return True

    def list_volumes(self, app: Optional[str] = None) -> str:
        return self.execute("volumes", ["list"] + self._app_args(app)).stdout

    def volume_exists(self, name: str, app: Optional[str] = None) -> bool:
        try:
            return volume_listed(self.list_volumes(app), name)
        except ExternalCommandError as e:
            if self.logger:
                self.logger.debug(f"Could not list volumes: {e.message}")
            return False

    def create_volume(
        self, name: str, region: str, size_gb: int, app: Optional[str] = None
    ) -> ExecutionResult:
        return self.execute(
            "volumes",
            ["create", name, "--region", region, "--size", str(size_gb), "--yes"]
            + self._app_args(app),
        )

    def list_buckets(self) -> str:
        return self.execute("storage", ["list"]).stdout

    def create_bucket(
        self,
        name: str,
        org: Optional[str] = None,
        public: bool = False,
        cwd: Optional[Path] = None,
    ) -> ExecutionResult:
        """
        Create a Tigris bucket with `flyctl storage create`.

        Args:
            name: Bucket name
            org: Organization slug
            public: Create a publicly readable bucket
            cwd: Working directory for flyctl (a scratch directory)
        """
        args = ["create", "--name", name]
        if org:
            args.extend(["--org", org])
        if public:
            args.append("--public")
        return self.execute("storage", args, cwd=cwd)

    def start_proxy(self, local_port: int, remote_port: int, app: str) -> subprocess.Popen:
        """
        Start `flyctl proxy` in the background with stdout piped.

        Raises:
            ToolNotFoundError: If flyctl is not installed
        """
        argv = self._prepare("proxy", [f"{local_port}:{remote_port}", "--app", app], False)
        try:
            return subprocess.Popen(
                [self.executable] + argv,
                cwd=self.cwd,
                env=self.child_env(),
                stdout=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise self._spawn_error(e) from e
