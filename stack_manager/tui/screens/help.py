"""Key reference."""

from textual.app import ComposeResult
from textual.containers import Container, VerticalScroll
from textual.widgets import Header, Static

from ..base_screen import BaseScreen

HELP_TEXT = """\
[b]Navigation[/b]
  ↑ / k         Select previous container
  ↓ / j         Select next container
  ?             This help
  p             Projects
  q             Quit

[b]Preflight[/b]
  s             Start the stack (docker compose up -d)
  t             Install the demo template into public_html
  r             Refresh

[b]Containers[/b]
  s             Start or stop the selected container
  r             Restart the selected container
  o             Open the selected container's URL in a browser
  S             Stop the stack (docker compose down)
  R             Restart the stack (docker compose restart)
  d / D         Destroy the stack and its volumes (asks twice)

[b]Output[/b]
  Esc           Back to the containers once the operation has finished
  r             Refresh
"""


class HelpScreen(BaseScreen):
    """Screen listing the dashboard keys."""

    BINDINGS = [
        ("escape", "go_back", "Back"),
        ("question_mark", "go_back", "Back"),
        ("q", "go_back", "Back"),
    ]

    def compose(self) -> ComposeResult:
        """Compose the help screen."""
        yield Header()
        yield Container(
            Static("Help", classes="title"),
            VerticalScroll(Static(HELP_TEXT), classes="box"),
            Static("Press Esc to return to the dashboard", id="status-message"),
            id="main-content",
        )
