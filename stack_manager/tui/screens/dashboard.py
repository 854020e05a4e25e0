"""Dashboard screen: project, stack status and compose output."""

import logging
from functools import partial
from pathlib import Path

from textual import events
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.message import Message
from textual.widgets import DataTable, Header, Static
from textual.worker import Worker, WorkerState

from ...core.compose import ComposeRunner
from ...core.config_loader import Settings, StackEnv
from ...core.docker_client import DockerClient, DockerClientError
from ...core.output import OutputLine
from ...core.project import TemplateError, detect_project, install_template
from ...core.stream import StreamingPump
from .. import render
from ..base_screen import BaseScreen
from ..controller import DashboardController, Panel
from ..events import (
    ContainerActionDone,
    ContainersLoaded,
    ContainersPolled,
    DetectProject,
    ErrorExpired,
    InstallTemplate,
    KeyPressed,
    LoadContainers,
    OpenURL,
    PollContainers,
    ProjectDetected,
    PumpStream,
    Quit,
    RefreshTick,
    RunContainerAction,
    ScheduleTick,
    SettleAfter,
    ShowView,
    StreamClosed,
    StreamOutput,
    StreamSettled,
    TemplateInstalled,
    ViewHidden,
    ViewShown,
)

logger = logging.getLogger(__name__)

STREAM_WORKER = "compose_stream"


class ControllerEvent(Message):
    """Carries a controller event through the screen's message queue."""

    def __init__(self, event) -> None:
        super().__init__()
        self.event = event


class DashboardScreen(BaseScreen):
    """Main dashboard for one compose stack."""

    AUTO_FOCUS = None

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
        self.settings = settings
        self.controller = DashboardController(
            compose_runner,
            refresh_interval=settings.refresh_interval,
            settle_delay=settings.settle_delay,
            output_limit=settings.output_limit,
        )

    def compose(self) -> ComposeResult:
        """Compose the dashboard screen."""
        yield Header()
        yield Container(
            Horizontal(
                Static("", id="project-panel", classes="box"),
                Vertical(
                    Static("", id="panel-title", classes="title"),
                    Static("", id="preflight"),
                    DataTable(id="status-table"),
                    VerticalScroll(Static("", id="output-text"), id="output-scroll"),
                    Static("", id="confirm-prompt"),
                    classes="box",
                    id="right-panel",
                ),
                id="top-row",
            ),
            Vertical(
                Static("", id="commands"),
                Static("", id="status-message"),
                classes="box",
                id="bottom-panel",
            ),
            id="main-content",
        )

    def on_mount(self) -> None:
        """Set up the table and kick off project detection."""
        table = self.query_one("#status-table", DataTable)
        table.add_columns("Service", "Status", "Image", "URL/Port", "CPU")
        table.cursor_type = "row"
        # Keys go to the screen, not to the widgets
        table.can_focus = False
        self.query_one("#output-scroll", VerticalScroll).can_focus = False

        self.run_step(self.controller.start())
        self.render_state()

    # -------------------------------------------------------------------------
    # Event loop
    # -------------------------------------------------------------------------

    def feed_controller(self, event) -> None:
        """Feed one event to the controller and run the step it returns."""
        serial = self.controller.state.error_serial
        step = self.controller.update(event)
        if self.controller.state.error_serial != serial:
            self.set_timer(
                self.controller.error_clear_delay,
                partial(self.post_controller_event, ErrorExpired(self.controller.state.error_serial)),
            )
        if self.is_mounted:
            self.render_state()
        if step is not None:
            self.run_step(step)

    def on_key(self, event: events.Key) -> None:
        key = event.character if event.is_printable and event.character else event.key
        event.stop()
        self.feed_controller(KeyPressed(key))

    def on_controller_event(self, message: ControllerEvent) -> None:
        self.feed_controller(message.event)

    def on_screen_resume(self) -> None:
        self.feed_controller(ViewShown())

    def on_screen_suspend(self) -> None:
        # Widgets may already be gone when the app is shutting down
        self.controller.update(ViewHidden())

    def post_controller_event(self, event) -> None:
        self.post_message(ControllerEvent(event))

    def run_step(self, step) -> None:
        """Start the unit of work a step asks for."""
        logger.debug("Running step %s", type(step).__name__)

        if isinstance(step, DetectProject):
            self.run_worker(self._detect_project, name="detect_project", thread=True, exit_on_error=False)
        elif isinstance(step, LoadContainers):
            self.run_worker(
                partial(self._load_containers, step.project),
                name="load_containers",
                thread=True,
                exit_on_error=False,
            )
        elif isinstance(step, PollContainers):
            self.run_worker(
                partial(self._poll_containers, step.project, step.generation),
                name="poll_containers",
                thread=True,
                exit_on_error=False,
            )
        elif isinstance(step, ScheduleTick):
            self.set_timer(step.delay, partial(self.post_controller_event, RefreshTick(step.generation)))
        elif isinstance(step, SettleAfter):
            self.set_timer(step.delay, partial(self.post_controller_event, StreamSettled(step.operation_id)))
        elif isinstance(step, RunContainerAction):
            self.run_worker(
                partial(self._container_action, step),
                name="container_action",
                thread=True,
                exit_on_error=False,
            )
        elif isinstance(step, PumpStream):
            self.run_worker(
                self._pump_stream(step),
                name=STREAM_WORKER,
                group=STREAM_WORKER,
                exit_on_error=False,
            )
        elif isinstance(step, InstallTemplate):
            self.run_worker(
                partial(self._install_template, step.project_path),
                name="install_template",
                thread=True,
                exit_on_error=False,
            )
        elif isinstance(step, ShowView):
            self.app.push_screen(step.name)
        elif isinstance(step, OpenURL):
            self.app.open_url(step.url)
        elif isinstance(step, Quit):
            self.app.exit()
        else:
            logger.warning("Unknown step %r", step)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Hand worker results back to the controller."""
        worker = event.worker

        if worker.name == STREAM_WORKER:
            # The pump reports its own lines; only a crash needs a terminal line
            if event.state == WorkerState.ERROR:
                logger.error("Compose stream failed: %s", worker.error)
                self.feed_controller(StreamOutput(
                    self.controller.state.operation_id,
                    OutputLine.fatal(f"ERROR: Stream failed: {worker.error}"),
                ))
            return

        if event.state == WorkerState.SUCCESS:
            if worker.result is not None:
                self.feed_controller(worker.result)
        elif event.state == WorkerState.ERROR:
            logger.error("Worker %s failed: %s", worker.name, worker.error)
            self.show_error(f"Error: {worker.error}")

    # -------------------------------------------------------------------------
    # Workers
    # -------------------------------------------------------------------------

    def _detect_project(self) -> ProjectDetected:
        """Worker to detect the project (runs in thread)."""
        try:
            return ProjectDetected(project=detect_project(self.compose_runner.code_dir))
        except OSError as e:
            return ProjectDetected(error=str(e))

    def _load_containers(self, project: str) -> ContainersLoaded:
        """Worker to list the stack's containers (runs in thread)."""
        try:
            return ContainersLoaded(self.docker_client.list_containers(project))
        except DockerClientError as e:
            return ContainersLoaded(error=e)

    def _poll_containers(self, project: str, generation: int) -> ContainersPolled:
        """Worker for one status poll, with CPU stats (runs in thread)."""
        try:
            containers = self.docker_client.list_containers_with_stats(project)
        except DockerClientError as e:
            return ContainersPolled(generation, error=e)
        return ContainersPolled(generation, containers)

    def _container_action(self, step: RunContainerAction) -> ContainerActionDone:
        """Worker to start/stop/restart one container (runs in thread)."""
        try:
            if step.action == "start":
                self.docker_client.start_container(step.container_id)
            elif step.action == "stop":
                self.docker_client.stop_container(step.container_id, self.settings.stop_timeout)
            else:
                self.docker_client.restart_container(step.container_id, self.settings.stop_timeout)
        except DockerClientError as e:
            return ContainerActionDone(step.action, step.service, error=e)
        return ContainerActionDone(step.action, step.service)

    def _install_template(self, project_path: Path) -> TemplateInstalled:
        """Worker to copy the demo template (runs in thread)."""
        try:
            install_template(project_path, self.stack_env.stack_home)
        except TemplateError as e:
            return TemplateInstalled(error=str(e))
        return TemplateInstalled()

    async def _pump_stream(self, step: PumpStream) -> None:
        try:
            async for line in StreamingPump(step.stream, timeout=self.settings.stream_timeout):
                self.post_controller_event(StreamOutput(step.operation_id, line))
            # After a timeout the command is still running; wait for it to exit
            await step.stream.wait_closed()
        finally:
            self.post_controller_event(StreamClosed(step.operation_id))

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def render_state(self) -> None:
        """Bring every widget in line with the controller state."""
        state = self.controller.state
        confirming = state.confirmation.active

        self.query_one("#project-panel", Static).update(
            render.project_panel(state.project, state.stack_running)
        )
        self.query_one("#panel-title", Static).update(render.panel_title(state))

        preflight = self.query_one("#preflight", Static)
        table = self.query_one("#status-table", DataTable)
        output_scroll = self.query_one("#output-scroll", VerticalScroll)
        prompt = self.query_one("#confirm-prompt", Static)

        preflight.display = state.panel == Panel.PREFLIGHT and not confirming
        table.display = state.panel == Panel.STATUS and not confirming
        output_scroll.display = state.panel == Panel.OUTPUT and not confirming
        prompt.display = confirming

        if confirming:
            project_name = state.project.name if state.project else self.compose_runner.project_name
            prompt.update(render.confirmation_text(state.confirmation, project_name))
        elif state.panel == Panel.PREFLIGHT:
            preflight.update(render.preflight_text(state.project))
        elif state.panel == Panel.STATUS:
            self._render_table(table)
        else:
            self.query_one("#output-text", Static).update(render.output_text(state.output))
            output_scroll.scroll_end(animate=False)

        self.query_one("#commands", Static).update(render.commands_text(state))
        self.query_one("#status-message", Static).update(render.status_line(state))

    def _render_table(self, table: DataTable) -> None:
        state = self.controller.state
        table.clear()
        for container in state.containers:
            table.add_row(
                render.escape_markup(render.truncate(container.service, 20)),
                render.status_markup(container.status),
                render.escape_markup(render.truncate(container.image, 30)),
                render.escape_markup(container.url or "-"),
                render.cpu_bar(container.cpu_percent) if container.running else "-",
            )
        if state.containers:
            table.move_cursor(row=state.selected_index)
