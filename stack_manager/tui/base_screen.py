"""Base screen class with common functionality."""

from textual.screen import Screen
from textual.widgets import Static

from .render import escape_markup

_LEVEL_COLORS = {
    "error": "red",
    "success": "green",
    "warning": "yellow",
}


class BaseScreen(Screen):
    """Base screen with a status line and a way back."""

    def show_status(self, message: str, level: str = "info") -> None:
        """Show a status message.

        Args:
            message: The message to display
            level: One of "info", "error", "success", "warning"
        """
        statuses = self.query("#status-message").results(Static)
        status = next(statuses, None)
        if status is None:
            self.notify(message, severity="error" if level == "error" else "information")
            return

        safe_message = escape_markup(message)
        color = _LEVEL_COLORS.get(level)
        status.update(f"[{color}]{safe_message}[/{color}]" if color else safe_message)

    def show_error(self, message: str) -> None:
        """Show an error message."""
        self.show_status(message, "error")

    def action_go_back(self) -> None:
        """Return to the previous screen."""
        if len(self.app.screen_stack) > 1:
            self.app.pop_screen()
