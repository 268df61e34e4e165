from __future__ import annotations

from pathlib import Path

from nuxfly.logger import DeployLogger


def test_console_messages_are_not_parsed_as_markup(console) -> None:
    logger = DeployLogger("deploy", console_=console)

    logger.step("Uploading [bold]assets[/bold]")
    logger.info("Wrote /srv/[app]/fly.toml")
    logger.success("Created bucket [demo-public]")
    logger.warning("Skipped [red]x[/red]")

    text = console.file.getvalue()
    assert "Uploading [bold]assets[/bold]" in text
    assert "Wrote /srv/[app]/fly.toml" in text
    assert "Created bucket [demo-public]" in text
    assert "Skipped [red]x[/red]" in text


def test_log_file_lives_under_nuxfly_logs(tmp_path: Path, console) -> None:
    logger = DeployLogger("generate", tmp_path / ".nuxfly", console_=console)
    with logger:
        logger.info("hello")

    assert logger.log_path.parent.parent == tmp_path / ".nuxfly" / "logs"
    assert logger.log_path.name.endswith("_generate.log")
    content = logger.log_path.read_text()
    assert "Operation: generate" in content
    assert "[INFO] hello" in content
    assert "Status: SUCCESS" in content
