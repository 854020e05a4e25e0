"""TUI screens."""

from .dashboard import DashboardScreen
from .help import HelpScreen
from .projects import ProjectsScreen

__all__ = [
    "DashboardScreen",
    "HelpScreen",
    "ProjectsScreen",
]
