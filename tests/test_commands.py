from __future__ import annotations

import json
import stat
import subprocess
import sys
import tomllib
from pathlib import Path

import pytest

from nuxfly.base import BaseCommand
from nuxfly.commands import studio as studio_module
from nuxfly.commands.deploy import DeployCommand
from nuxfly.commands.generate import GenerateCommand
from nuxfly.commands.import_cmd import ImportCommand
from nuxfly.commands.launch import LaunchCommand, LaunchOptions, default_app_name, size_in_gb
from nuxfly.commands.proxy import ProxyCommand
from nuxfly.commands.studio import StudioCommand, studio_args
from nuxfly.commands.update import UpdateCommand
from nuxfly.exceptions import ConfigInvalidError, ExternalCommandError, ToolNotFoundError
from tests.fakes.flyctl import failed, ok
from tests.fakes.project import STATUS_OUTPUT, storage_create_output, write_descriptor


def output_of(console) -> str:
    return console.file.getvalue()


class RaisingCommand(BaseCommand):
    def __init__(self, error: BaseException, **kwargs):
        super().__init__(**kwargs)
        self.error = error

    def execute(self) -> None:
        raise self.error


@pytest.mark.parametrize(
    ("error", "exit_code"),
    [
        (ConfigInvalidError("bad memory"), 3),
        (ToolNotFoundError(), 127),
        (ExternalCommandError("deploy", 7, stderr="boom"), 7),
        (FileNotFoundError(2, "No such file", "fly.toml"), 2),
        (PermissionError(13, "Permission denied", "fly.toml"), 13),
        (ValueError("unexpected"), 1),
    ],
)
def test_run_maps_errors_to_exit_codes(console, error, exit_code) -> None:
    with pytest.raises(SystemExit) as exc_info:
        RaisingCommand(error, console=console).run()

    assert exc_info.value.code == exit_code


@pytest.mark.parametrize(
    "error",
    [
        KeyboardInterrupt(),
        ExternalCommandError("deploy", 130),
        ExternalCommandError("studio", -2, tool="drizzle-kit"),
    ],
)
def test_cancellation_returns_quietly(console, error) -> None:
    RaisingCommand(error, console=console).run()

    assert "cancelled" in output_of(console)


def test_error_output_includes_suggestion(console) -> None:
    with pytest.raises(SystemExit):
        RaisingCommand(ToolNotFoundError(), console=console).run()

    text = output_of(console)
    assert "flyctl not found in PATH" in text
    assert "fly.io/docs/flyctl/install" in text


# Generate


def test_generate_writes_deployment_files(built_project: Path, command_factory, flyctl_recorder) -> None:
    migrations = built_project / "server" / "db" / "migrations"
    migrations.mkdir(parents=True)
    (migrations / "0000_init.sql").write_text("CREATE TABLE users (id integer);\n")
    (built_project / "pnpm-lock.yaml").write_text("")

    command_factory(GenerateCommand, built_project).run()

    nuxfly_dir = built_project / ".nuxfly"
    descriptor = tomllib.loads((built_project / "fly.toml").read_text())
    assert descriptor["primary_region"] == "ord"
    assert descriptor["build"]["dockerfile"] == ".nuxfly/Dockerfile"
    assert "pnpm install" not in (nuxfly_dir / "Dockerfile").read_text()
    assert "ENV PNPM_HOME=/pnpm" in (nuxfly_dir / "Dockerfile").read_text()
    assert (built_project / ".dockerignore").is_file()
    assert (nuxfly_dir / "litestream.yml").is_file()
    assert stat.S_IMODE((nuxfly_dir / "start.sh").stat().st_mode) & stat.S_IXUSR
    assert json.loads((nuxfly_dir / "package.json").read_text())["dependencies"] == {
        "drizzle-kit": "^0.30.1",
        "drizzle-orm": "^0.40.0",
    }
    assert (nuxfly_dir / "drizzle" / "migrations" / "0000_init.sql").is_file()
    assert (nuxfly_dir / ".output" / "server" / "index.mjs").is_file()
    assert flyctl_recorder.calls == []


def test_generate_backs_up_existing_descriptor(built_project: Path, command_factory) -> None:
    write_descriptor(built_project)

    command_factory(GenerateCommand, built_project).run()

    assert (built_project / "fly.toml.backup").read_text().startswith('app = "demo"')
    regenerated = tomllib.loads((built_project / "fly.toml").read_text())
    assert regenerated["app"] == "demo"
    assert regenerated["mounts"] == [
        {"source": "sqlite_data", "destination": "/data", "initial_size": "3gb"}
    ]


def test_generate_requires_build_output(nuxt_project: Path, command_factory, console) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(GenerateCommand, nuxt_project).run()

    assert exc_info.value.code == 1
    assert "No .output directory found" in output_of(console)
    assert not (nuxt_project / "fly.toml").exists()


def test_generate_outside_nuxt_project(tmp_path: Path, command_factory) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(GenerateCommand, tmp_path).run()

    assert exc_info.value.code == 4


def test_generate_rejects_malformed_cpu_count(built_project: Path, command_factory, console) -> None:
    write_descriptor(built_project, '[vm]\ncpus = "two"\n')

    with pytest.raises(SystemExit) as exc_info:
        command_factory(GenerateCommand, built_project).run()

    assert exc_info.value.code == 3
    assert "vm.cpus must be an integer" in output_of(console)


# Deploy


STORAGE_RESPONSES = {
    ("status",): ok(STATUS_OUTPUT),
    ("storage", "list"): ok(""),
    ("storage", "create", "--name", "demo-litestream"): ok(storage_create_output("demo-litestream")),
    ("storage", "create", "--name", "demo-public"): ok(storage_create_output("demo-public")),
    ("secrets", "list"): ok("[]"),
}


def test_deploy_stages_files_provisions_storage_and_deploys(
    built_project: Path, command_factory, flyctl_recorder
) -> None:
    descriptor = write_descriptor(built_project)
    flyctl_recorder.responses.update(STORAGE_RESPONSES)

    command_factory(
        DeployCommand,
        built_project,
        features={"litestream": True, "publicStorage": True},
        strategy="rolling",
    ).run()

    assert flyctl_recorder.streamed == [
        [
            "deploy",
            "--strategy",
            "rolling",
            "--ha=false",
            "--config",
            str(descriptor),
            "--app",
            "demo",
        ]
    ]
    created = [call[3] for call in flyctl_recorder.find_calls("storage", "create")]
    assert created == ["demo-litestream", "demo-public"]
    assert all("--org" in call for call in flyctl_recorder.find_calls("storage", "create"))
    secrets = [arg for call in flyctl_recorder.find_calls("secrets", "set") for arg in call]
    assert "LITESTREAM_S3_BUCKET_NAME=demo-litestream" in secrets
    assert "NUXT_PUBLIC_S3_PUBLIC_URL=https://demo-public.t3.storageapi.dev" in secrets
    assert (built_project / ".nuxfly" / "Dockerfile").is_file()
    assert (built_project / ".nuxfly" / ".output" / "public" / "favicon.ico").is_file()


def test_deploy_secrets_are_staged_before_deploy(
    built_project: Path, command_factory, flyctl_recorder
) -> None:
    write_descriptor(built_project)
    flyctl_recorder.responses.update(STORAGE_RESPONSES)

    command_factory(DeployCommand, built_project, features={"litestream": True}).run()

    commands = [call[0] for call in flyctl_recorder.calls]
    assert commands.index("secrets") < commands.index("deploy")
    assert "--stage" in flyctl_recorder.find_calls("secrets", "set")[0]


def test_deploy_continues_when_storage_fails(
    built_project: Path, command_factory, flyctl_recorder, console
) -> None:
    write_descriptor(built_project)
    flyctl_recorder.responses.update(
        {("status",): ok(STATUS_OUTPUT), ("storage", "create"): failed(stderr="quota")}
    )

    command_factory(DeployCommand, built_project, features={"privateStorage": True}).run()

    assert flyctl_recorder.streamed[0][0] == "deploy"
    assert "demo-private" in output_of(console)


def test_deploy_without_storage_features_skips_buckets(
    built_project: Path, command_factory, flyctl_recorder
) -> None:
    write_descriptor(built_project)

    command_factory(DeployCommand, built_project).run()

    assert flyctl_recorder.find_calls("storage") == []
    assert flyctl_recorder.streamed[0][0] == "deploy"


def test_deploy_requires_descriptor(built_project: Path, command_factory, flyctl_recorder) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(DeployCommand, built_project).run()

    assert exc_info.value.code == 2
    assert flyctl_recorder.streamed == []


def test_deploy_requires_build_output(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    write_descriptor(nuxt_project)

    with pytest.raises(SystemExit) as exc_info:
        command_factory(DeployCommand, nuxt_project).run()

    assert exc_info.value.code == 1
    assert flyctl_recorder.streamed == []


def test_deploy_failure_exit_code_is_propagated(
    built_project: Path, command_factory, flyctl_recorder
) -> None:
    write_descriptor(built_project)
    flyctl_recorder.responses[("deploy",)] = failed(returncode=5)

    with pytest.raises(SystemExit) as exc_info:
        command_factory(DeployCommand, built_project).run()

    assert exc_info.value.code == 5


def test_deploy_uses_environment_descriptor(
    built_project: Path, command_factory, flyctl_recorder
) -> None:
    staging = write_descriptor(built_project, 'app = "demo-staging"\n', name="fly.staging.toml")

    command_factory(DeployCommand, built_project, environ={"NUXFLY_ENV": "staging"}).run()

    argv = flyctl_recorder.streamed[0]
    assert argv[argv.index("--config") + 1] == str(staging)
    assert argv[argv.index("--app") + 1] == "demo-staging"


# Launch


def test_launch_helpers() -> None:
    assert size_in_gb("3gb") == 3
    assert size_in_gb("512mb") == 1
    assert size_in_gb("2048mb") == 2
    assert size_in_gb("huge") == 1
    assert default_app_name("My Nuxt_App") == "my-nuxt-app"
    assert default_app_name("___") == "nuxt-app"


def test_launch_creates_app_volume_and_buckets(
    nuxt_project: Path, command_factory, flyctl_recorder
) -> None:
    flyctl_recorder.responses.update(
        {
            ("auth", "whoami"): ok("dev@example.com\n"),
            ("status",): ok(STATUS_OUTPUT),
            ("storage", "create"): ok(storage_create_output("my-app-litestream")),
        }
    )

    command_factory(
        LaunchCommand, nuxt_project, features={"litestream": True}, options=LaunchOptions(region="ams")
    ).run()

    descriptor = tomllib.loads((nuxt_project / "fly.toml").read_text())
    assert descriptor["app"] == "my-app"
    assert descriptor["primary_region"] == "ams"
    assert descriptor["mounts"] == [
        {"source": "sqlite_data", "destination": "/data", "initial_size": "1gb"}
    ]

    launch_argv = flyctl_recorder.streamed[0]
    assert launch_argv[:5] == ["launch", "--name", "my-app", "--region", "ams"]
    assert "--no-deploy" in launch_argv
    assert "--config" not in launch_argv

    volume_call = flyctl_recorder.find_calls("volumes", "create")[0]
    assert volume_call[:8] == ["volumes", "create", "sqlite_data", "--region", "ams", "--size", "1", "--yes"]
    assert flyctl_recorder.find_calls("storage", "create")[0][:4] == [
        "storage",
        "create",
        "--name",
        "my-app-litestream",
    ]
    assert (nuxt_project / ".nuxfly" / "start.sh").is_file()


def test_launch_for_environment_suffixes_name_and_passes_descriptor(
    nuxt_project: Path, command_factory, flyctl_recorder
) -> None:
    flyctl_recorder.responses[("auth", "whoami")] = ok("dev@example.com\n")

    command_factory(
        LaunchCommand,
        nuxt_project,
        environ={"NUXFLY_ENV": "staging"},
        options=LaunchOptions(name="shop"),
    ).run()

    staging = nuxt_project / "fly.staging.toml"
    assert tomllib.loads(staging.read_text())["app"] == "shop-staging"
    launch_argv = flyctl_recorder.streamed[0]
    assert launch_argv[2] == "shop-staging"
    assert launch_argv[-2:] == ["--config", str(staging)]


def test_launch_skips_existing_volume(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    flyctl_recorder.responses.update(
        {
            ("auth", "whoami"): ok("dev@example.com\n"),
            ("volumes", "list"): ok("ID  NAME\nvol_1  sqlite_data\n"),
        }
    )

    command_factory(LaunchCommand, nuxt_project, options=LaunchOptions()).run()

    assert flyctl_recorder.find_calls("volumes", "create") == []


def test_launch_refuses_existing_app(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    write_descriptor(nuxt_project)
    flyctl_recorder.responses[("auth", "whoami")] = ok("dev@example.com\n")

    with pytest.raises(SystemExit) as exc_info:
        command_factory(LaunchCommand, nuxt_project, options=LaunchOptions()).run()

    assert exc_info.value.code == 1
    assert flyctl_recorder.streamed == []
    assert not (nuxt_project / "fly.toml.backup").exists()


def test_launch_rejects_invalid_name(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    with pytest.raises(SystemExit):
        command_factory(
            LaunchCommand, nuxt_project, options=LaunchOptions(name="Bad_Name")
        ).run()

    assert flyctl_recorder.streamed == []


# Update


def test_update_creates_missing_buckets(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    write_descriptor(nuxt_project)
    flyctl_recorder.responses.update(
        {
            ("status",): ok(STATUS_OUTPUT),
            ("storage", "list"): ok("demo-litestream   acme-corp\n"),
            ("storage", "create"): ok(storage_create_output("demo-private")),
        }
    )

    command_factory(
        UpdateCommand, nuxt_project, features={"litestream": True, "privateStorage": True}
    ).run()

    creates = flyctl_recorder.find_calls("storage", "create")
    assert creates == [["storage", "create", "--name", "demo-private", "--org", "acme-corp"]]


def test_update_uses_app_option(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    flyctl_recorder.responses[("status",)] = ok(STATUS_OUTPUT)

    command_factory(UpdateCommand, nuxt_project, app="other").run()

    assert ["status", "--app", "other"] in flyctl_recorder.calls


def test_update_without_app_name(nuxt_project: Path, command_factory) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(UpdateCommand, nuxt_project).run()

    assert exc_info.value.code == 1


def test_update_without_organization(nuxt_project: Path, command_factory, console) -> None:
    write_descriptor(nuxt_project)

    with pytest.raises(SystemExit):
        command_factory(UpdateCommand, nuxt_project, features={"litestream": True}).run()

    assert "Could not determine organization name" in output_of(console)


def test_update_reports_bucket_failures(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    write_descriptor(nuxt_project)
    flyctl_recorder.responses.update(
        {("status",): ok(STATUS_OUTPUT), ("storage", "create"): failed(stderr="quota")}
    )

    with pytest.raises(SystemExit) as exc_info:
        command_factory(UpdateCommand, nuxt_project, features={"publicStorage": True}).run()

    assert exc_info.value.code == 1


# Import


def test_import_saves_remote_configuration(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    command_factory(ImportCommand, nuxt_project, app="demo").run()

    assert flyctl_recorder.find_calls("config", "save") == [
        ["config", "save", "--app", "demo", "--config", str(nuxt_project / "fly.toml")]
    ]
    assert (nuxt_project / ".nuxfly").is_dir()


def test_import_backs_up_existing_descriptor(nuxt_project: Path, command_factory) -> None:
    write_descriptor(nuxt_project)

    command_factory(ImportCommand, nuxt_project).run()

    assert (nuxt_project / "fly.toml.backup").is_file()


def test_import_requires_app_name(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(ImportCommand, nuxt_project).run()

    assert exc_info.value.code == 1
    assert flyctl_recorder.calls == []


def test_import_failure_keeps_exit_code(nuxt_project: Path, command_factory, flyctl_recorder, console) -> None:
    flyctl_recorder.responses[("config", "save")] = failed(returncode=2, stderr="app not found")

    with pytest.raises(SystemExit) as exc_info:
        command_factory(ImportCommand, nuxt_project, app="demo").run()

    assert exc_info.value.code == 2
    assert "Failed to import app configuration" in output_of(console)


# Proxy


def test_proxy_injects_descriptor_and_app(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    descriptor = write_descriptor(nuxt_project)

    command_factory(ProxyCommand, nuxt_project, command="logs", args=["--no-tail"]).run()

    assert flyctl_recorder.streamed == [
        ["logs", "--no-tail", "--config", str(descriptor), "--app", "demo"]
    ]


def test_proxy_outside_project_forwards_untouched(tmp_path: Path, command_factory, flyctl_recorder) -> None:
    command_factory(ProxyCommand, tmp_path, command="apps", args=["list"]).run()

    assert flyctl_recorder.streamed == [["apps", "list"]]
    assert not (tmp_path / ".nuxfly").exists()


def test_proxy_suggests_close_commands(tmp_path: Path, command_factory, flyctl_recorder, console) -> None:
    flyctl_recorder.responses[("deplyo",)] = failed()

    with pytest.raises(SystemExit) as exc_info:
        command_factory(ProxyCommand, tmp_path, command="deplyo").run()

    assert exc_info.value.code == 1
    text = output_of(console)
    assert "Unknown command 'deplyo'" in text
    assert "nuxfly deploy" in text


def test_proxy_does_not_suggest_for_known_commands(
    tmp_path: Path, command_factory, flyctl_recorder, console
) -> None:
    flyctl_recorder.responses[("status",)] = failed(returncode=3)

    with pytest.raises(SystemExit) as exc_info:
        command_factory(ProxyCommand, tmp_path, command="status").run()

    assert exc_info.value.code == 3
    assert "Did you mean" not in output_of(console)


def test_proxy_cancellation_is_silent(tmp_path: Path, command_factory, flyctl_recorder) -> None:
    flyctl_recorder.responses[("ssh",)] = failed(returncode=130)

    command_factory(ProxyCommand, tmp_path, command="ssh", args=["console"]).run()


def test_proxy_child_killed_by_ctrl_c_is_silent(
    tmp_path: Path, command_factory, flyctl_recorder, console
) -> None:
    flyctl_recorder.responses[("logs",)] = failed(returncode=-2)

    command_factory(ProxyCommand, tmp_path, command="logs").run()

    assert "cancelled" in output_of(console)
    assert "failed" not in output_of(console)


def test_proxy_requires_descriptor_inside_project(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    with pytest.raises(SystemExit) as exc_info:
        command_factory(ProxyCommand, nuxt_project, command="status").run()

    assert exc_info.value.code == 2
    assert flyctl_recorder.streamed == []


def test_proxy_self_managed_verbs_skip_descriptor_check(
    nuxt_project: Path, command_factory, flyctl_recorder
) -> None:
    command_factory(ProxyCommand, nuxt_project, command="apps", args=["list"]).run()

    assert flyctl_recorder.streamed == [["apps", "list"]]


def test_proxy_reports_configuration_errors(nuxt_project: Path, command_factory) -> None:
    write_descriptor(nuxt_project, '[vm]\nmemory = "lots"\n')

    with pytest.raises(SystemExit) as exc_info:
        command_factory(ProxyCommand, nuxt_project, command="status").run()

    assert exc_info.value.code == 3


# Studio


def spawn_tunnel(code: str) -> subprocess.Popen:
    return subprocess.Popen(
        [sys.executable, "-u", "-c", code], stdout=subprocess.PIPE, text=True
    )


def install_drizzle_kit(project: Path, record: Path, returncode: int = 0) -> None:
    script = project / "node_modules" / ".bin" / "drizzle-kit"
    script.parent.mkdir(parents=True)
    script.write_text(
        f"#!{sys.executable}\n"
        "import json, sys\n"
        f"open({str(record)!r}, 'w').write(json.dumps(sys.argv[1:]))\n"
        f"sys.exit({returncode})\n"
    )
    script.chmod(0o755)


def studio_command(command_factory, flyctl_recorder, project: Path, tunnel_code: str, **kwargs):
    cmd = command_factory(StudioCommand, project, **kwargs)
    proxies = []

    def create_flyctl(config):
        fake = flyctl_recorder(config)

        def start_proxy(local_port, remote_port, app):
            proxies.append((local_port, remote_port, app))
            return spawn_tunnel(tunnel_code)

        fake.start_proxy = start_proxy
        return fake

    cmd.create_flyctl = create_flyctl
    return cmd, proxies


READY_TUNNEL = (
    "import time\n"
    "print('Proxying local port 5432 to remote [demo.internal]:5432')\n"
    "time.sleep(30)\n"
)


def test_studio_runs_drizzle_kit_through_tunnel(
    nuxt_project: Path, command_factory, flyctl_recorder, tmp_path: Path
) -> None:
    write_descriptor(nuxt_project)
    record = tmp_path / "studio-args.json"
    install_drizzle_kit(nuxt_project, record)
    cmd, proxies = studio_command(
        command_factory,
        flyctl_recorder,
        nuxt_project,
        READY_TUNNEL,
        features={"drizzle": {"config": "drizzle.prod.config.ts"}},
        port=5000,
    )

    cmd.run()

    assert proxies == [(5432, 5432, "demo")]
    assert json.loads(record.read_text()) == [
        "studio",
        "--port",
        "5000",
        "--host",
        "0.0.0.0",
        "--config",
        "drizzle.prod.config.ts",
    ]


def test_studio_times_out_waiting_for_tunnel(
    nuxt_project: Path, command_factory, flyctl_recorder, tmp_path: Path, monkeypatch, console
) -> None:
    write_descriptor(nuxt_project)
    record = tmp_path / "studio-args.json"
    install_drizzle_kit(nuxt_project, record)
    monkeypatch.setattr(studio_module, "TUNNEL_READY_TIMEOUT", 0.2)
    cmd, _ = studio_command(
        command_factory, flyctl_recorder, nuxt_project, "import time\ntime.sleep(30)\n"
    )

    with pytest.raises(SystemExit) as exc_info:
        cmd.run()

    assert exc_info.value.code == 1
    assert "Tunnel setup timeout after 0.2s" in output_of(console)
    assert not record.exists()


def test_studio_reports_tunnel_exit(
    nuxt_project: Path, command_factory, flyctl_recorder, tmp_path: Path, console
) -> None:
    write_descriptor(nuxt_project)
    install_drizzle_kit(nuxt_project, tmp_path / "studio-args.json")
    cmd, _ = studio_command(
        command_factory, flyctl_recorder, nuxt_project, "import sys\nsys.exit(3)\n"
    )

    with pytest.raises(SystemExit):
        cmd.run()

    assert "Tunnel process exited with code 3" in output_of(console)


def test_studio_failure_exit_code(
    nuxt_project: Path, command_factory, flyctl_recorder, tmp_path: Path
) -> None:
    write_descriptor(nuxt_project)
    install_drizzle_kit(nuxt_project, tmp_path / "studio-args.json", returncode=4)
    cmd, _ = studio_command(command_factory, flyctl_recorder, nuxt_project, READY_TUNNEL)

    with pytest.raises(SystemExit) as exc_info:
        cmd.run()

    assert exc_info.value.code == 4


def test_studio_rejects_invalid_port(nuxt_project: Path, command_factory, flyctl_recorder) -> None:
    write_descriptor(nuxt_project)

    with pytest.raises(SystemExit):
        command_factory(StudioCommand, nuxt_project, port=70000).run()

    assert flyctl_recorder.calls == []


def test_studio_args_without_config() -> None:
    assert studio_args(4983) == ["studio", "--port", "4983", "--host", "0.0.0.0"]
