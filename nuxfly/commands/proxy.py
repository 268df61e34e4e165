"""nuxfly - flyctl pass-through"""

from typing import Sequence

from rich.markup import escape

from nuxfly.base import ProjectCommand
from nuxfly.constants import (
    FLYCTL_COMMANDS,
    SELF_MANAGED_COMMANDS,
    SUGGESTION_LIMIT,
    SUGGESTION_MAX_DISTANCE,
)
from nuxfly.exceptions import ExternalCommandError, NotRecognizedProjectError
from nuxfly.utils import levenshtein_distance


def suggest_commands(command: str) -> list[str]:
    """Known flyctl commands within a small edit distance, closest first."""
    scored = [
        (levenshtein_distance(command, known), known)
        for known in FLYCTL_COMMANDS
        if known != command
    ]
    matches = sorted(
        (item for item in scored if item[0] <= SUGGESTION_MAX_DISTANCE),
        key=lambda item: item[0],
    )
    return [known for _distance, known in matches[:SUGGESTION_LIMIT]]


class ProxyCommand(ProjectCommand):
    """
    Forward an unrecognized verb to flyctl.

    Inside a project the active descriptor must exist (except for verbs that
    manage their own app selection) and is injected along with the app;
    outside one the arguments go to flyctl untouched.
    """

    command_name = "proxy"

    def __init__(self, command: str, args: Sequence[str] = (), verbose: bool = False, **kwargs):
        super().__init__(verbose=verbose, **kwargs)
        self.command = command
        self.args = list(args)

    def setup(self) -> None:
        try:
            super().setup()
        except NotRecognizedProjectError:
            self.config = None
            self.init_logger(self.command_name)
            self.logger.debug("Not inside a Nuxt project; forwarding without injection")
            self.flyctl = self.create_flyctl(None)

    def execute(self) -> None:
        if self.validator and self.command not in SELF_MANAGED_COMMANDS:
            self.validator.validate_command("proxy")
        self.logger.debug(f"Proxying command: {self.command} {' '.join(self.args)}")
        try:
            self.flyctl.stream(self.command, self.args)
        except ExternalCommandError as e:
            if not e.is_cancelled and self.command not in FLYCTL_COMMANDS:
                self._show_suggestions()
            raise

    def _show_suggestions(self) -> None:
        suggestions = suggest_commands(self.command)
        if not suggestions:
            return
        self.console.print(f"\n[yellow]Unknown command '{escape(self.command)}'. Did you mean:[/yellow]")
        for suggestion in suggestions:
            self.console.print(f"  nuxfly {suggestion}")
