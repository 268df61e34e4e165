#!/usr/bin/env python3
"""nuxfly CLI - Main entry point"""

import functools
import os
import sys

from rich.console import Console

# Rich-Click: colourised CLI help
import rich_click as click

from nuxfly import __version__
from nuxfly.constants import EXIT_USER_CANCELLED

# Configure rich-click output
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

# COMMANDS
click.rich_click.STYLE_COMMAND = "bold cyan"

# OPTIONS
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"

# HEADERS
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"

# HELP TEXT
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_HELPTEXT = ""
click.rich_click.STYLE_OPTION_HELP = ""

# METAVARS
click.rich_click.STYLE_METAVAR = "bold yellow"
click.rich_click.STYLE_METAVAR_APPEND = "dim yellow"
click.rich_click.STYLE_METAVAR_SEPARATOR = "dim"

# DEFAULTS
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_EPILOG_TEXT = "dim"
click.rich_click.STYLE_FOOTER_TEXT = "dim"

# PANEL BORDERS
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"

# ALIGNMENT
click.rich_click.ALIGN_OPTIONS_PANEL = "left"
click.rich_click.ALIGN_ERRORS_PANEL = "left"
click.rich_click.ERRORS_EPILOGUE = ""

from nuxfly.commands import (  # noqa: E402
    deploy,
    generate,
    import_cmd,
    launch,
    studio,
    update,
)
from nuxfly.commands.proxy import ProxyCommand  # noqa: E402

console = Console()


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""
    from click.exceptions import ClickException, UsageError

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            if e.ctx and e.ctx.command:
                console.print(
                    f"[dim]Run[/dim] [cyan]nuxfly {e.ctx.command.name} --help[/cyan] [dim]for usage information[/dim]\n"
                )
            sys.exit(e.exit_code)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(EXIT_USER_CANCELLED)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")
            if os.environ.get("DEBUG"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(1)

    return wrapper


class PassthroughCommand(click.RichCommand):
    """
    Command that forwards `nuxfly <verb> ...` to flyctl.

    The argument tail is taken verbatim (options, `--help` and `--` included)
    so flyctl sees exactly what the user typed.
    """

    def __init__(self, name: str):
        super().__init__(name=name, callback=self._forward, add_help_option=False)

    def parse_args(self, ctx, args):
        ctx.params["args"] = tuple(args)
        return []

    def _forward(self, args):
        cmd = ProxyCommand(self.name, args, verbose=bool(os.environ.get("DEBUG")))
        cmd.run()


class NuxflyGroup(click.RichGroup):
    """Click group that hands every unregistered verb to flyctl"""

    def get_command(self, ctx, cmd_name):
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        return PassthroughCommand(cmd_name)


@click.group(cls=NuxflyGroup)
@click.version_option(version=__version__, prog_name="nuxfly")
def cli():
    """
    nuxfly - Deploy Nuxt apps to Fly.io with SQLite, Litestream and Tigris storage.

    \b
    Quick Start:
      nuxfly launch               # Create the app, volume and buckets
      npm run build
      nuxfly deploy               # Ship it

    \b
    Environments:
      NUXFLY_ENV=staging nuxfly launch   # Uses fly.staging.toml

    \b
    Anything else goes straight to flyctl with --config/--app filled in:
      nuxfly status
      nuxfly logs
      nuxfly secrets list
    """


cli.add_command(launch.launch)
cli.add_command(generate.generate)
cli.add_command(deploy.deploy)
cli.add_command(import_cmd.import_app)
cli.add_command(studio.studio)
cli.add_command(update.update)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli()


if __name__ == "__main__":
    main()
