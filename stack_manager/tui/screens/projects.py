"""Projects screen: where the stack lives and what it runs for."""

from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import Header, Static

from ...core.compose import ComposeRunner
from ...core.config_loader import StackEnv
from ...core.project import PUBLIC_HTML
from ..base_screen import BaseScreen
from ..render import escape_markup


def describe_stack(stack_env: StackEnv, compose_runner: ComposeRunner) -> str:
    """Summary of the current project and stack locations."""
    stack_file = stack_env.stack_file
    file_state = "[green]found[/green]" if stack_file.is_file() else "[red]missing[/red]"
    html_state = (
        "[green]present[/green]"
        if (compose_runner.code_dir / PUBLIC_HTML).is_dir()
        else "[yellow]missing[/yellow]"
    )
    return (
        f"[b]Project[/b]       {escape_markup(compose_runner.project_name)}\n"
        f"[b]Directory[/b]     {escape_markup(str(compose_runner.code_dir))}\n"
        f"[b]public_html[/b]   {html_state}\n"
        "\n"
        f"[b]Stack file[/b]    {escape_markup(str(stack_file))} ({file_state})\n"
        f"[b]Stack home[/b]    {escape_markup(str(stack_env.stack_home))}\n"
        "\n"
        "[dim]Run stack-manager from another project directory to manage it.[/dim]"
    )


class ProjectsScreen(BaseScreen):
    """Shows the detected project and the stack it is served by."""

    BINDINGS = [
        ("escape", "go_back", "Back"),
        ("p", "go_back", "Back"),
        ("q", "go_back", "Back"),
    ]

    def __init__(self, stack_env: StackEnv, compose_runner: ComposeRunner):
        super().__init__()
        self.stack_env = stack_env
        self.compose_runner = compose_runner

    def compose(self) -> ComposeResult:
        """Compose the projects screen."""
        yield Header()
        yield Container(
            Static("Projects", classes="title"),
            Static("", id="project-info", classes="box"),
            Static("Press Esc to return to the dashboard", id="status-message"),
            id="main-content",
        )

    def on_mount(self) -> None:
        self.refresh_info()

    def on_screen_resume(self) -> None:
        """Re-read the filesystem each time the screen is shown."""
        if self.is_mounted:
            self.refresh_info()

    def refresh_info(self) -> None:
        self.query_one("#project-info", Static).update(
            describe_stack(self.stack_env, self.compose_runner)
        )
