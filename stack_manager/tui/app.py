"""Main TUI application using Textual."""

import logging

from textual.app import App
from textual.binding import Binding

from ..core.compose import ComposeRunner
from ..core.config_loader import Settings, StackEnv
from ..core.docker_client import DockerClient
from .screens.dashboard import DashboardScreen
from .screens.help import HelpScreen
from .screens.projects import ProjectsScreen

logger = logging.getLogger(__name__)


class StackManagerApp(App):
    """Compose Stack Manager TUI Application."""

    TITLE = "Stack Manager"
    SUB_TITLE = "Manage the local Docker Compose stack"

    CSS = """
    Screen {
        background: $surface;
    }

    #main-content {
        height: 100%;
        padding: 0 1;
    }

    .box {
        border: solid $primary;
        padding: 0 1;
    }

    .title {
        text-style: bold;
        color: $text;
        padding: 0 0 1 0;
    }

    #top-row {
        height: 1fr;
    }

    #project-panel {
        width: 34;
        height: 100%;
    }

    #right-panel {
        width: 1fr;
        height: 100%;
    }

    #bottom-panel {
        height: auto;
    }

    #commands {
        color: $text-muted;
    }

    DataTable {
        height: 1fr;
    }

    #output-scroll {
        height: 1fr;
    }

    #confirm-prompt {
        border: heavy $error;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    SCREENS = {
        "help": HelpScreen,
    }

    def __init__(
        self,
        docker_client: DockerClient,
        compose_runner: ComposeRunner,
        stack_env: StackEnv,
        settings: Settings,
    ):
        super().__init__()
        self.docker_client = docker_client
        self.compose_runner = compose_runner
        self.stack_env = stack_env
        self.stack_settings = settings

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.install_screen(ProjectsScreen(self.stack_env, self.compose_runner), name="projects")
        self.push_screen(DashboardScreen(
            self.docker_client,
            self.compose_runner,
            self.stack_env,
            self.stack_settings,
        ))


def run_app(
    docker_client: DockerClient,
    compose_runner: ComposeRunner,
    stack_env: StackEnv,
    settings: Settings,
) -> None:
    """Run the TUI application."""
    app = StackManagerApp(docker_client, compose_runner, stack_env, settings)
    logger.info("Starting TUI for %s", compose_runner.project_name)
    app.run()
