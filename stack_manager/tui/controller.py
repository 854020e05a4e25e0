"""Dashboard controller: the reducer behind the dashboard screen.

The controller owns DashboardState. The screen feeds it one event at a time
through update(), which mutates the state and returns at most one step for
the screen to run. Nothing here touches Textual, Docker or the filesystem,
except opening a compose stream, which only validates the stack file.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..core.compose import ComposeRunner, StackFileError
from ..core.docker_client import ContainerSnapshot
from ..core.errors import format_action_error, format_user_error
from ..core.output import OutputKind, OutputLine
from ..core.project import Project
from .confirmation import ConfirmationFlow
from .events import (
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

PAST_TENSE = {"start": "started", "stop": "stopped", "restart": "restarted"}
PROGRESSIVE = {"start": "Starting", "stop": "Stopping", "restart": "Restarting"}

ERROR_CLEAR_DELAY = 5.0


class Panel(Enum):
    """What the right-hand panel shows."""
    PREFLIGHT = "preflight"
    OUTPUT = "output"
    STATUS = "status"


@dataclass
class DashboardState:
    panel: Panel = Panel.PREFLIGHT
    containers: list[ContainerSnapshot] = field(default_factory=list)
    output: list[OutputLine] = field(default_factory=list)
    streaming: bool = False
    stream_open: bool = False  # The compose command may outlive its stream
    confirmation: ConfirmationFlow = field(default_factory=ConfirmationFlow)
    status_message: str = ""
    error_message: str = ""  # Shown instead of status_message when set
    error_serial: int = 0
    last_error: Optional[str] = None
    refresh_active: bool = False
    refresh_generation: int = 0
    selected_index: int = 0
    project: Optional[Project] = None
    visible: bool = True
    operation: str = ""  # Compose operation of the current/last stream
    operation_id: int = 0

    @property
    def selected_container(self) -> Optional[ContainerSnapshot]:
        if 0 <= self.selected_index < len(self.containers):
            return self.containers[self.selected_index]
        return None

    @property
    def stack_running(self) -> bool:
        return any(c.running for c in self.containers)


class DashboardController:
    """Routes events to handlers and decides the next step."""

    def __init__(
        self,
        compose_runner: ComposeRunner,
        refresh_interval: float = 2.0,
        settle_delay: float = 2.0,
        output_limit: int = 500,
        error_clear_delay: float = ERROR_CLEAR_DELAY,
    ):
        self.compose_runner = compose_runner
        self.error_clear_delay = error_clear_delay
        self.refresh_interval = refresh_interval
        self.settle_delay = settle_delay
        self.output_limit = output_limit
        self.state = DashboardState()

    def start(self):
        """First step after the screen is mounted."""
        self.state.status_message = "Detecting project..."
        return DetectProject()

    def update(self, event):
        """Apply one event; returns the next step or None."""
        if isinstance(event, KeyPressed):
            return self._on_key(event.key)
        if isinstance(event, StreamOutput):
            return self._on_stream_output(event)
        if isinstance(event, StreamSettled):
            return self._on_stream_settled(event)
        if isinstance(event, StreamClosed):
            return self._on_stream_closed(event)
        if isinstance(event, ContainersLoaded):
            return self._on_containers_loaded(event)
        if isinstance(event, RefreshTick):
            return self._on_refresh_tick(event)
        if isinstance(event, ContainersPolled):
            return self._on_containers_polled(event)
        if isinstance(event, ContainerActionDone):
            return self._on_container_action_done(event)
        if isinstance(event, ProjectDetected):
            return self._on_project_detected(event)
        if isinstance(event, TemplateInstalled):
            return self._on_template_installed(event)
        if isinstance(event, ErrorExpired):
            if event.serial == self.state.error_serial:
                self.state.error_message = ""
            return None
        if isinstance(event, ViewShown):
            return self._on_view_shown()
        if isinstance(event, ViewHidden):
            self._stop_polling()
            self.state.visible = False
            return None
        logger.warning("Ignoring unknown event %r", event)
        return None

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    def _on_key(self, key: str):
        state = self.state

        if state.confirmation.active:
            if state.confirmation.handle_key(key):
                logger.info("Destroy confirmed for %s", self._project_name())
                return self._start_operation("destroy")
            return None

        state.error_message = ""

        if key in ("q", "ctrl+c"):
            return Quit()
        if key in ("?", "p"):
            self._stop_polling()
            state.visible = False
            return ShowView("help" if key == "?" else "projects")
        if key in ("up", "k"):
            self._move_selection(-1)
            return None
        if key in ("down", "j"):
            self._move_selection(1)
            return None

        if state.streaming:
            state.status_message = "Streaming output... wait for completion"
            return None

        if key in ("d", "D"):
            return self._begin_destroy()

        if state.panel == Panel.PREFLIGHT:
            return self._on_preflight_key(key)
        if state.panel == Panel.STATUS:
            return self._on_status_key(key)
        return self._on_output_key(key)

    def _on_preflight_key(self, key: str):
        state = self.state
        if key == "s":
            if state.project is None:
                state.status_message = "Project not detected yet"
                return None
            if not state.project.has_public_html:
                state.status_message = "public_html missing. Press 't' to install the template"
                return None
            if state.containers:
                state.status_message = "Stack already has containers. Press 'r' to refresh"
                return None
            return self._start_operation("up")
        if key == "t":
            if state.project is None:
                state.status_message = "Project not detected yet"
                return None
            if state.project.has_public_html:
                state.status_message = "public_html already present"
                return None
            state.status_message = "Installing template..."
            return InstallTemplate(state.project.path)
        if key == "r":
            return self._load_containers()
        return None

    def _on_status_key(self, key: str):
        state = self.state
        if key == "S":
            return self._start_operation("down")
        if key == "R":
            return self._start_operation("restart")

        container = state.selected_container
        if key in ("s", "r", "o") and container is None:
            state.status_message = "No container selected"
            return None

        if key == "s":
            action = "stop" if container.running else "start"
            state.status_message = f"{PROGRESSIVE[action]} '{container.service}'..."
            return RunContainerAction(container.id, action, container.service)
        if key == "r":
            state.status_message = f"Restarting '{container.service}'..."
            return RunContainerAction(container.id, "restart", container.service)
        if key == "o":
            if not container.url.startswith("http"):
                state.status_message = f"No web URL for '{container.service}'"
                return None
            state.status_message = f"Opening {container.url}"
            return OpenURL(container.url)
        return None

    def _on_output_key(self, key: str):
        state = self.state
        if key == "escape":
            state.panel = Panel.STATUS if state.containers else Panel.PREFLIGHT
            logger.debug("Left output panel for %s", state.panel.value)
            return self._load_containers()
        if key == "r":
            return self._load_containers()
        return None

    def _begin_destroy(self):
        state = self.state
        if state.stream_open:
            state.status_message = self._still_running_message()
            return None
        if state.project is None or not state.project.has_public_html:
            state.status_message = "Nothing to destroy: no project with public_html detected"
            return None
        state.confirmation.begin()
        return None

    def _move_selection(self, delta: int) -> None:
        state = self.state
        if not state.containers:
            state.selected_index = 0
            return
        index = state.selected_index + delta
        state.selected_index = max(0, min(index, len(state.containers) - 1))

    # -------------------------------------------------------------------------
    # Stack operations
    # -------------------------------------------------------------------------

    def _start_operation(self, operation: str):
        state = self.state
        if state.streaming:
            state.status_message = "A stack operation is already running"
            return None
        if state.stream_open:
            state.status_message = self._still_running_message()
            return None

        try:
            stream = self.compose_runner.stream(operation)
        except StackFileError as e:
            logger.warning("Cannot start %s: %s", operation, e)
            self._show_error(str(e))
            return None

        state.output.clear()
        state.panel = Panel.OUTPUT
        state.streaming = True
        state.stream_open = True
        state.operation = operation
        state.operation_id += 1
        state.status_message = f"Running docker compose {operation}..."
        logger.info("Started compose %s (operation %d)", operation, state.operation_id)
        return PumpStream(state.operation_id, operation, stream)

    def _on_stream_output(self, event: StreamOutput):
        state = self.state
        if not state.streaming or event.operation_id != state.operation_id:
            logger.debug("Dropping late output line %r", event.line.text)
            return None

        self._append_output(event.line)

        if event.line.kind == OutputKind.COMPLETE:
            state.streaming = False
            state.status_message = f"docker compose {state.operation} finished"
            logger.info("Compose %s complete", state.operation)
            return SettleAfter(state.operation_id, self.settle_delay)

        if event.line.kind == OutputKind.FATAL:
            state.streaming = False
            self._show_error(event.line.text)
            logger.warning("Compose %s failed: %s", state.operation, event.line.text)
        return None

    def _on_stream_settled(self, event: StreamSettled):
        state = self.state
        if state.streaming or event.operation_id != state.operation_id:
            return None
        state.panel = Panel.STATUS
        return self._load_containers()

    def _on_stream_closed(self, event: StreamClosed):
        state = self.state
        if event.operation_id != state.operation_id:
            return None
        state.stream_open = False
        logger.info("Compose %s exited (operation %d)", state.operation, event.operation_id)
        if not state.streaming and state.panel == Panel.OUTPUT and state.last_error:
            state.status_message = f"docker compose {state.operation} exited"
        return None

    def _still_running_message(self) -> str:
        return f"docker compose {self.state.operation} is still running, wait for it to exit"

    def _append_output(self, line: OutputLine) -> None:
        output = self.state.output
        output.append(line)
        if len(output) > self.output_limit:
            del output[:len(output) - self.output_limit]

    # -------------------------------------------------------------------------
    # Container list and poller
    # -------------------------------------------------------------------------

    def _project_name(self) -> str:
        if self.state.project is not None:
            return self.state.project.name
        return self.compose_runner.project_name

    def _load_containers(self):
        return LoadContainers(self._project_name())

    def _on_containers_loaded(self, event: ContainersLoaded):
        if event.error is not None:
            self._record_error(event.error)
            return None
        self._apply_containers(event.containers)
        return self._maybe_start_polling()

    def _on_refresh_tick(self, event: RefreshTick):
        state = self.state
        if not state.refresh_active or event.generation != state.refresh_generation:
            return None
        return PollContainers(self._project_name(), event.generation)

    def _on_containers_polled(self, event: ContainersPolled):
        state = self.state
        if not state.refresh_active or event.generation != state.refresh_generation:
            return None

        if event.error is not None:
            self._record_error(event.error)
            return ScheduleTick(state.refresh_generation, self.refresh_interval)

        self._apply_containers(event.containers)
        if not event.containers:
            self._stop_polling()
            return None
        return ScheduleTick(state.refresh_generation, self.refresh_interval)

    def _maybe_start_polling(self):
        state = self.state
        if not state.containers or state.refresh_active or not state.visible:
            return None
        state.refresh_active = True
        state.refresh_generation += 1
        logger.debug("Status polling started (generation %d)", state.refresh_generation)
        return ScheduleTick(state.refresh_generation, self.refresh_interval)

    def _stop_polling(self) -> None:
        if self.state.refresh_active:
            logger.debug("Status polling stopped (generation %d)", self.state.refresh_generation)
        self.state.refresh_active = False

    def _apply_containers(self, containers: list[ContainerSnapshot]) -> None:
        state = self.state
        selected = state.selected_container
        state.containers = list(containers)
        state.last_error = None

        index = 0
        if selected is not None:
            for i, container in enumerate(state.containers):
                if container.id == selected.id:
                    index = i
                    break
            else:
                index = min(state.selected_index, max(len(state.containers) - 1, 0))
        state.selected_index = index

        if state.containers and state.panel != Panel.OUTPUT:
            state.panel = Panel.STATUS
        elif not state.containers and state.panel == Panel.STATUS:
            state.panel = Panel.PREFLIGHT

    def _record_error(self, error: Exception) -> None:
        self._show_error(format_user_error(error), str(error))

    def _show_error(self, message: str, detail: Optional[str] = None) -> None:
        """Display an error; each one gets a serial so only it can expire itself."""
        state = self.state
        state.last_error = message if detail is None else detail
        state.error_message = message
        state.error_serial += 1

    # -------------------------------------------------------------------------
    # Results of one-off work
    # -------------------------------------------------------------------------

    def _on_container_action_done(self, event: ContainerActionDone):
        state = self.state
        if event.error is not None:
            self._show_error(format_action_error(event.error, event.action, event.service), str(event.error))
            return None
        done = PAST_TENSE.get(event.action, event.action)
        state.status_message = f"Container '{event.service}' {done}"
        return self._load_containers()

    def _on_project_detected(self, event: ProjectDetected):
        state = self.state
        if event.error is not None or event.project is None:
            self._show_error(f"Project detection failed: {event.error}", event.error)
            return None
        state.project = event.project
        state.status_message = ""
        return self._load_containers()

    def _on_template_installed(self, event: TemplateInstalled):
        state = self.state
        if event.error is not None:
            self._show_error(f"Template installation failed: {event.error}", event.error)
            return None
        state.status_message = "Template installed into public_html"
        return DetectProject()

    def _on_view_shown(self):
        state = self.state
        state.visible = True
        if state.project is None:
            return None
        return self._load_containers()
