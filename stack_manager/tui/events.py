"""Events fed to the dashboard controller and the steps it asks for.

Events are inputs: key presses and the results of work started earlier.
Steps are requests for exactly one unit of work; the screen runs them and
reports back with a new event.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..core.compose import ComposeStream
from ..core.docker_client import ContainerSnapshot
from ..core.output import OutputLine
from ..core.project import Project


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class KeyPressed:
    key: str  # Printable character, or a Textual key name such as "enter"


@dataclass(frozen=True)
class ProjectDetected:
    project: Optional[Project] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ContainersLoaded:
    containers: list[ContainerSnapshot] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class ContainersPolled:
    generation: int
    containers: list[ContainerSnapshot] = field(default_factory=list)
    error: Optional[Exception] = None


@dataclass(frozen=True)
class RefreshTick:
    generation: int


@dataclass(frozen=True)
class ContainerActionDone:
    action: str
    service: str
    error: Optional[Exception] = None


@dataclass(frozen=True)
class StreamOutput:
    operation_id: int
    line: OutputLine


@dataclass(frozen=True)
class StreamSettled:
    operation_id: int


@dataclass(frozen=True)
class StreamClosed:
    """The compose command behind an operation has exited."""
    operation_id: int


@dataclass(frozen=True)
class TemplateInstalled:
    error: Optional[str] = None


@dataclass(frozen=True)
class ErrorExpired:
    serial: int


@dataclass(frozen=True)
class ViewShown:
    """The dashboard became the active screen again."""


@dataclass(frozen=True)
class ViewHidden:
    """Another screen was pushed over the dashboard."""


# =============================================================================
# Steps
# =============================================================================

@dataclass(frozen=True)
class DetectProject:
    pass


@dataclass(frozen=True)
class LoadContainers:
    project: str


@dataclass(frozen=True)
class PollContainers:
    project: str
    generation: int


@dataclass(frozen=True)
class ScheduleTick:
    generation: int
    delay: float


@dataclass(frozen=True)
class RunContainerAction:
    container_id: str
    action: str  # "start", "stop" or "restart"
    service: str


@dataclass(frozen=True)
class PumpStream:
    operation_id: int
    operation: str
    stream: ComposeStream


@dataclass(frozen=True)
class SettleAfter:
    operation_id: int
    delay: float


@dataclass(frozen=True)
class InstallTemplate:
    project_path: Path


@dataclass(frozen=True)
class ShowView:
    name: str  # "help" or "projects"


@dataclass(frozen=True)
class OpenURL:
    url: str


@dataclass(frozen=True)
class Quit:
    pass
