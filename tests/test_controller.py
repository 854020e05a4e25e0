"""Tests for the dashboard controller (pure reducer, no Textual, no Docker)."""

import pytest

from conftest import make_container
from stack_manager.core.compose import ComposeRunner
from stack_manager.core.docker_client import (
    ContainerNotFoundError,
    ContainerStatus,
    DaemonUnreachableError,
)
from stack_manager.core.output import OutputKind, OutputLine
from stack_manager.core.project import Project
from stack_manager.tui.confirmation import ConfirmationStage
from stack_manager.tui.controller import DashboardController, Panel
from stack_manager.tui.events import (
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


@pytest.fixture
def controller(runner, project):
    controller = DashboardController(runner, refresh_interval=2.0, settle_delay=2.0)
    controller.state.project = project
    return controller


def press(controller, *keys):
    step = None
    for key in keys:
        step = controller.update(KeyPressed(key))
    return step


def load(controller, containers):
    return controller.update(ContainersLoaded(list(containers)))


# -----------------------------------------------------------------------------
# Start-up
# -----------------------------------------------------------------------------

def test_start_detects_project(runner):
    controller = DashboardController(runner)
    assert isinstance(controller.start(), DetectProject)


def test_project_detected_loads_containers(runner, project):
    controller = DashboardController(runner)
    step = controller.update(ProjectDetected(project=project))
    assert controller.state.project is project
    assert step == LoadContainers("my-site")


def test_project_detection_error_is_shown(runner):
    controller = DashboardController(runner)
    step = controller.update(ProjectDetected(error="boom"))
    assert step is None
    assert "boom" in controller.state.error_message


# -----------------------------------------------------------------------------
# Panel transitions
# -----------------------------------------------------------------------------

def test_containers_in_preflight_switch_to_status(controller):
    step = load(controller, [make_container("a", "nginx")])
    assert controller.state.panel == Panel.STATUS
    assert isinstance(step, ScheduleTick)


def test_empty_list_in_status_switches_to_preflight(controller):
    load(controller, [make_container("a", "nginx")])
    load(controller, [])
    assert controller.state.panel == Panel.PREFLIGHT


def test_containers_while_in_output_keep_output(controller):
    press(controller, "s")
    assert controller.state.panel == Panel.OUTPUT

    load(controller, [make_container("a", "nginx")])
    assert controller.state.panel == Panel.OUTPUT
    assert controller.state.streaming


def test_load_error_keeps_panel_and_sets_message(controller):
    step = controller.update(ContainersLoaded(error=DaemonUnreachableError()))
    assert step is None
    assert controller.state.panel == Panel.PREFLIGHT
    assert "Docker daemon is not running" in controller.state.error_message
    assert controller.state.last_error


def test_error_expires_after_delay(controller):
    controller.update(ContainersLoaded(error=DaemonUnreachableError()))
    serial = controller.state.error_serial

    assert controller.update(ErrorExpired(serial)) is None
    assert controller.state.error_message == ""
    assert controller.state.last_error


def test_newer_error_outlives_older_timer(controller):
    controller.update(ContainersLoaded(error=DaemonUnreachableError()))
    first = controller.state.error_serial
    controller.update(TemplateInstalled(error="template not found"))

    controller.update(ErrorExpired(first))
    assert "template not found" in controller.state.error_message

    controller.update(ErrorExpired(controller.state.error_serial))
    assert controller.state.error_message == ""


# -----------------------------------------------------------------------------
# Streaming stack operations
# -----------------------------------------------------------------------------

def test_start_stream_to_status_scenario(controller):
    step = press(controller, "s")
    assert isinstance(step, PumpStream)
    assert step.operation == "up"
    assert controller.state.panel == Panel.OUTPUT
    assert controller.state.streaming

    op = step.operation_id
    assert controller.update(StreamOutput(op, OutputLine.data("Network created"))) is None
    step = controller.update(StreamOutput(op, OutputLine.complete()))

    assert step == SettleAfter(op, 2.0)
    assert not controller.state.streaming
    assert controller.state.output[-1].text == "[Complete]"
    assert controller.state.panel == Panel.OUTPUT

    step = controller.update(StreamSettled(op))
    assert controller.state.panel == Panel.STATUS
    assert step == LoadContainers("my-site")


def test_starting_a_stream_clears_previous_output(controller):
    step = press(controller, "s")
    controller.update(StreamOutput(step.operation_id, OutputLine.data("old")))
    controller.update(StreamOutput(step.operation_id, OutputLine.complete()))
    controller.update(StreamSettled(step.operation_id))
    controller.update(StreamClosed(step.operation_id))
    load(controller, [make_container("a", "nginx")])

    press(controller, "S")
    assert controller.state.output == []
    assert controller.state.panel == Panel.OUTPUT


def test_missing_stack_file_leaves_panel_untouched(tmp_path, project):
    runner = ComposeRunner(tmp_path / "missing.yml", code_dir=project.path)
    controller = DashboardController(runner)
    controller.state.project = project

    step = press(controller, "s")

    assert step is None
    assert controller.state.panel == Panel.PREFLIGHT
    assert not controller.state.streaming
    assert "not found" in controller.state.error_message


def test_fatal_line_ends_stream_and_stays_in_output(controller):
    step = press(controller, "s")
    fatal = OutputLine.fatal("ERROR: Failed to start command: no docker")
    assert controller.update(StreamOutput(step.operation_id, fatal)) is None

    state = controller.state
    assert not state.streaming
    assert state.panel == Panel.OUTPUT
    assert state.error_message == fatal.text


def test_escape_after_failure_returns_to_preflight(controller):
    step = press(controller, "s")
    controller.update(StreamOutput(step.operation_id, OutputLine.fatal("ERROR: Failed to create network")))

    step = press(controller, "escape")
    assert controller.state.panel == Panel.PREFLIGHT
    assert step == LoadContainers("my-site")


def test_escape_while_streaming_does_nothing(controller):
    press(controller, "s")
    assert press(controller, "escape") is None
    assert controller.state.panel == Panel.OUTPUT


def test_no_second_stream_while_streaming(controller):
    press(controller, "s")
    assert press(controller, "d") is None
    assert press(controller, "S") is None
    assert controller.state.confirmation.stage == ConfirmationStage.IDLE
    assert controller.state.operation == "up"


def test_warning_line_keeps_streaming(controller):
    step = press(controller, "s")
    controller.update(StreamOutput(step.operation_id, OutputLine(OutputKind.WARNING, "ERROR: pull failed")))
    assert controller.state.streaming
    assert controller.state.output[-1].is_error


def test_lines_after_terminal_are_dropped(controller):
    step = press(controller, "s")
    controller.update(StreamOutput(step.operation_id, OutputLine.complete()))
    controller.update(StreamOutput(step.operation_id, OutputLine.data("late")))
    assert [line.text for line in controller.state.output] == ["[Complete]"]


def test_output_is_capped(runner, project):
    controller = DashboardController(runner, output_limit=3)
    controller.state.project = project
    step = press(controller, "s")
    for i in range(5):
        controller.update(StreamOutput(step.operation_id, OutputLine.data(f"line {i}")))
    assert [line.text for line in controller.state.output] == ["line 2", "line 3", "line 4"]


def test_stale_settle_is_ignored(controller):
    first = press(controller, "s")
    controller.update(StreamOutput(first.operation_id, OutputLine.complete()))
    controller.update(StreamClosed(first.operation_id))

    second = press(controller, "d", "y", "e", "s", "enter", *"destroy", "enter")
    assert isinstance(second, PumpStream)

    assert controller.update(StreamSettled(first.operation_id)) is None
    assert controller.state.panel == Panel.OUTPUT


def test_timed_out_command_blocks_new_operations(controller):
    first = press(controller, "s")
    timeout = OutputLine.fatal("ERROR: Timed out waiting for output after 30s")
    controller.update(StreamOutput(first.operation_id, timeout))
    assert not controller.state.streaming

    # The first docker compose is still running
    press(controller, "escape")
    assert press(controller, "s") is None
    assert press(controller, "d") is None
    assert controller.state.confirmation.stage == ConfirmationStage.IDLE
    assert "still running" in controller.state.status_message

    controller.update(StreamClosed(first.operation_id))
    second = press(controller, "s")
    assert isinstance(second, PumpStream)
    assert second.operation_id == first.operation_id + 1


def test_stale_stream_closed_is_ignored(controller):
    first = press(controller, "s")
    controller.update(StreamOutput(first.operation_id, OutputLine.complete()))
    controller.update(StreamClosed(first.operation_id))
    press(controller, "escape")
    second = press(controller, "s")
    assert isinstance(second, PumpStream)

    controller.update(StreamClosed(first.operation_id))
    assert controller.state.stream_open
    controller.update(StreamClosed(second.operation_id))
    assert not controller.state.stream_open


# -----------------------------------------------------------------------------
# Destroy confirmation
# -----------------------------------------------------------------------------

def test_destroy_confirmation_scenario(controller):
    load(controller, [make_container("a", "nginx")])

    assert press(controller, "d") is None
    assert controller.state.confirmation.stage == ConfirmationStage.FIRST_PROMPT

    press(controller, "y", "e", "s", "enter")
    assert controller.state.confirmation.stage == ConfirmationStage.SECOND_PROMPT

    step = press(controller, *"destroy", "enter")
    assert isinstance(step, PumpStream)
    assert step.operation == "destroy"
    assert controller.state.confirmation.stage == ConfirmationStage.IDLE
    assert controller.state.confirmation.first_input == ""
    assert controller.state.confirmation.second_input == ""
    assert controller.state.panel == Panel.OUTPUT


def test_confirmation_consumes_every_key(controller):
    press(controller, "D")
    assert press(controller, "q") is None
    assert press(controller, "?") is None
    assert controller.state.confirmation.first_input == "q?"
    assert controller.state.refresh_active is False


def test_wrong_first_answer_stays_on_first_prompt(controller):
    press(controller, "d", "y", "enter")
    assert controller.state.confirmation.stage == ConfirmationStage.FIRST_PROMPT
    assert controller.state.confirmation.first_input == ""


def test_escape_cancels_destroy(controller):
    press(controller, "d", "y", "e", "s", "enter", "d", "e")
    assert press(controller, "escape") is None
    flow = controller.state.confirmation
    assert flow.stage == ConfirmationStage.IDLE
    assert flow.first_input == flow.second_input == ""
    assert controller.state.panel == Panel.PREFLIGHT


def test_destroy_needs_public_html(runner, project_dir):
    controller = DashboardController(runner)
    controller.state.project = Project("my-site", project_dir, has_public_html=False)
    press(controller, "d")
    assert controller.state.confirmation.stage == ConfirmationStage.IDLE


def test_destroy_with_missing_stack_file_resets_flow(tmp_path, project):
    runner = ComposeRunner(tmp_path / "missing.yml", code_dir=project.path)
    controller = DashboardController(runner)
    controller.state.project = project

    step = press(controller, "d", "y", "e", "s", "enter", *"destroy", "enter")

    assert step is None
    assert controller.state.confirmation.stage == ConfirmationStage.IDLE
    assert controller.state.panel == Panel.PREFLIGHT
    assert controller.state.error_message


# -----------------------------------------------------------------------------
# Refresh poller
# -----------------------------------------------------------------------------

def test_poller_chain(controller):
    tick = load(controller, [make_container("a", "nginx")])
    assert tick == ScheduleTick(1, 2.0)
    assert controller.state.refresh_active

    step = controller.update(RefreshTick(1))
    assert step == PollContainers("my-site", 1)

    step = controller.update(ContainersPolled(1, [make_container("a", "nginx")]))
    assert step == ScheduleTick(1, 2.0)


def test_poller_is_not_started_twice(controller):
    load(controller, [make_container("a", "nginx")])
    assert load(controller, [make_container("a", "nginx")]) is None
    assert controller.state.refresh_generation == 1


def test_poll_error_keeps_polling(controller):
    load(controller, [make_container("a", "nginx")])
    step = controller.update(ContainersPolled(1, error=DaemonUnreachableError()))
    assert step == ScheduleTick(1, 2.0)
    assert controller.state.refresh_active
    assert controller.state.containers


def test_empty_poll_stops_polling(controller):
    load(controller, [make_container("a", "nginx")])
    step = controller.update(ContainersPolled(1, []))
    assert step is None
    assert not controller.state.refresh_active
    assert controller.state.panel == Panel.PREFLIGHT
    assert controller.update(RefreshTick(1)) is None


def test_help_stops_polling_and_return_restarts_it(controller):
    load(controller, [make_container("a", "nginx")])

    assert press(controller, "?") == ShowView("help")
    assert not controller.state.refresh_active
    assert controller.update(RefreshTick(1)) is None
    assert controller.update(ContainersPolled(1, [make_container("a", "nginx")])) is None

    assert controller.update(ViewShown()) == LoadContainers("my-site")
    step = load(controller, [make_container("a", "nginx")])
    assert step == ScheduleTick(2, 2.0)
    # The old chain stays dead
    assert controller.update(RefreshTick(1)) is None


def test_projects_view_stops_polling(controller):
    load(controller, [make_container("a", "nginx")])
    assert press(controller, "p") == ShowView("projects")
    assert not controller.state.refresh_active


def test_results_while_hidden_do_not_start_polling(controller):
    controller.update(ViewHidden())
    assert load(controller, [make_container("a", "nginx")]) is None
    assert not controller.state.refresh_active


def test_view_shown_before_detection_does_nothing(runner):
    controller = DashboardController(runner)
    assert controller.update(ViewShown()) is None


# -----------------------------------------------------------------------------
# Container actions and navigation
# -----------------------------------------------------------------------------

def test_s_stops_running_container(controller):
    load(controller, [make_container("a", "nginx")])
    step = press(controller, "s")
    assert step == RunContainerAction("a", "stop", "nginx")


def test_s_starts_stopped_container(controller):
    load(controller, [make_container("a", "nginx"), make_container("b", "mariadb", ContainerStatus.STOPPED)])
    press(controller, "down")
    assert press(controller, "s") == RunContainerAction("b", "start", "mariadb")


def test_r_restarts_selected_container(controller):
    load(controller, [make_container("a", "nginx")])
    assert press(controller, "r") == RunContainerAction("a", "restart", "nginx")


def test_action_success_refreshes(controller):
    load(controller, [make_container("a", "nginx")])
    step = controller.update(ContainerActionDone("stop", "nginx"))
    assert step == LoadContainers("my-site")
    assert controller.state.status_message == "Container 'nginx' stopped"


def test_action_failure_is_formatted(controller):
    load(controller, [make_container("a", "nginx")])
    error = ContainerNotFoundError(detail="No such container: a")
    step = controller.update(ContainerActionDone("restart", "nginx", error=error))
    assert step is None
    assert controller.state.error_message.startswith("Container 'nginx' not found")


def test_selection_is_clamped(controller):
    load(controller, [make_container("a", "nginx"), make_container("b", "php")])
    press(controller, "j", "j", "j")
    assert controller.state.selected_index == 1
    press(controller, "k", "up", "k")
    assert controller.state.selected_index == 0


def test_selection_follows_container_id(controller):
    load(controller, [make_container("a", "nginx"), make_container("b", "php")])
    press(controller, "down")
    load(controller, [make_container("c", "mariadb"), make_container("a", "nginx"), make_container("b", "php")])
    assert controller.state.selected_container.id == "b"

    load(controller, [make_container("c", "mariadb")])
    assert controller.state.selected_index == 0


def test_open_url(controller):
    load(controller, [
        make_container("a", "nginx", url="http://localhost:80"),
        make_container("b", "mariadb", url="localhost:3306"),
    ])
    assert press(controller, "o") == OpenURL("http://localhost:80")
    press(controller, "down")
    assert press(controller, "o") is None
    assert "No web URL" in controller.state.status_message


def test_stack_keys_in_status(controller):
    load(controller, [make_container("a", "nginx")])
    step = press(controller, "R")
    assert isinstance(step, PumpStream)
    assert step.operation == "restart"


def test_quit(controller):
    assert press(controller, "q") == Quit()


# -----------------------------------------------------------------------------
# Template
# -----------------------------------------------------------------------------

def test_install_template_when_public_html_missing(runner, project_dir):
    controller = DashboardController(runner)
    controller.state.project = Project("my-site", project_dir, has_public_html=False)

    assert press(controller, "s") is None
    assert press(controller, "t") == InstallTemplate(project_dir)
    assert controller.update(TemplateInstalled()) == DetectProject()


def test_template_failure_is_shown(controller):
    assert controller.update(TemplateInstalled(error="template not found")) is None
    assert "template not found" in controller.state.error_message
