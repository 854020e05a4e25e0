"""Rich-markup text for the dashboard panels."""

from typing import Optional

from ..core.docker_client import ContainerStatus
from ..core.output import OutputKind, OutputLine
from ..core.project import Project
from .confirmation import ConfirmationFlow, ConfirmationStage, FIRST_ANSWER, SECOND_ANSWER
from .controller import DashboardState, Panel

CPU_BAR_WIDTH = 10
MAX_OUTPUT_LINES = 200

_STATUS_STYLE = {
    ContainerStatus.RUNNING: ("green", "●"),
    ContainerStatus.STOPPED: ("red", "○"),
    ContainerStatus.RESTARTING: ("yellow", "◐"),
    ContainerStatus.ERROR: ("red", "✗"),
    ContainerStatus.UNKNOWN: ("dim", "?"),
}

_COMMANDS = {
    Panel.PREFLIGHT: "[s] Start  [t] Install template  [r] Refresh  [?] Help  [p] Projects  [q] Quit",
    Panel.STATUS: (
        "[↑/↓] Select  [s] Start/Stop  [r] Restart  [o] Open  "
        "[S] Stop stack  [R] Restart stack  [D] Destroy  [?] Help  [q] Quit"
    ),
    Panel.OUTPUT: "[Esc] Back  [r] Refresh  [?] Help  [q] Quit",
}


def escape_markup(text: str) -> str:
    """Escape opening brackets so the text is not read as markup."""
    return text.replace("[", "\\[")


def truncate(text: str, width: int) -> str:
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[:width - 3] + "..."


def cpu_bar(percent: float, width: int = CPU_BAR_WIDTH) -> str:
    """Small bar plus value, e.g. '███░░░░░░░  31.2%'."""
    clamped = max(0.0, min(percent, 100.0))
    filled = int(round(clamped / 100.0 * width))
    return "█" * filled + "░" * (width - filled) + f" {percent:5.1f}%"


def status_markup(status: ContainerStatus) -> str:
    color, icon = _STATUS_STYLE[status]
    return f"[{color}]{icon} {status.label}[/{color}]"


def project_panel(project: Optional[Project], stack_running: bool) -> str:
    """Left panel: project name, path and what is there."""
    if project is None:
        return "[b]Project[/b]\n\n[dim]Detecting project...[/dim]"

    lines = [
        f"[b]📁 {escape_markup(project.name)}[/b]",
        f"[dim]{escape_markup(truncate(str(project.path), 40))}[/dim]",
        "",
    ]
    if stack_running:
        lines.append("[green]● Stack running[/green]")
    else:
        lines.append("[dim]○ Stack not running[/dim]")
    if project.has_public_html:
        lines.append("[green]✓ public_html present[/green]")
    else:
        lines.append("[yellow]✗ public_html missing[/yellow]")
    return "\n".join(lines)


def preflight_text(project: Optional[Project]) -> str:
    if project is None:
        return "Detecting project..."
    if project.has_public_html:
        return (
            "[green]✓ public_html found[/green]\n\n"
            "Press 's' to start the stack"
        )
    return (
        "[yellow]✗ public_html not found[/yellow]\n\n"
        "Press 't' to install the demo template, then 's' to start the stack"
    )


def output_line_markup(line: OutputLine) -> str:
    text = escape_markup(line.text)
    if line.kind == OutputKind.COMPLETE:
        return f"[green]{text}[/green]"
    if line.kind == OutputKind.FATAL:
        return f"[bold red]{text}[/bold red]"
    if line.kind == OutputKind.WARNING:
        return f"[red]{text}[/red]"
    return text


def output_text(lines: list[OutputLine], max_lines: int = MAX_OUTPUT_LINES) -> str:
    """The most recent compose output lines, oldest first."""
    return "\n".join(output_line_markup(line) for line in lines[-max_lines:])


def confirmation_text(flow: ConfirmationFlow, project_name: str) -> str:
    if flow.stage == ConfirmationStage.FIRST_PROMPT:
        return (
            f"[bold red]⚠ Destroy stack '{escape_markup(project_name)}'?[/bold red]\n"
            "This removes all containers, networks and VOLUMES.\n\n"
            f"Type '{FIRST_ANSWER}' and press Enter: {escape_markup(flow.first_input)}█\n\n"
            "[dim]Esc to cancel[/dim]"
        )
    if flow.stage == ConfirmationStage.SECOND_PROMPT:
        return (
            "[bold red]⚠ This cannot be undone.[/bold red]\n\n"
            f"Type '{SECOND_ANSWER}' and press Enter: {escape_markup(flow.second_input)}█\n\n"
            "[dim]Esc to cancel[/dim]"
        )
    return ""


def commands_text(state: DashboardState) -> str:
    if state.confirmation.active:
        return escape_markup("[Enter] Confirm  [Esc] Cancel")
    if state.streaming:
        return "Streaming output... (wait for completion)"
    return escape_markup(_COMMANDS[state.panel])


def status_line(state: DashboardState) -> str:
    if state.error_message:
        return f"[red]{escape_markup(state.error_message)}[/red]"
    return escape_markup(state.status_message)


def panel_title(state: DashboardState) -> str:
    if state.panel == Panel.OUTPUT:
        suffix = " (running)" if state.streaming else ""
        return f"docker compose {state.operation}{suffix}"
    if state.panel == Panel.STATUS:
        return "Containers"
    return "Preflight"
