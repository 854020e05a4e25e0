"""Core modules for Compose Stack Manager."""

from .config_loader import (
    ConfigLoader,
    Settings,
    StackEnv,
    detect_stack_env,
    get_config_loader,
)
from .compose import ComposeResult, ComposeRunner, ComposeStream, StackFileError
from .docker_client import (
    ContainerNotFoundError,
    ContainerSnapshot,
    ContainerStatus,
    ConflictError,
    DaemonUnreachableError,
    DockerClient,
    DockerClientError,
    DockerPermissionError,
    DockerTimeoutError,
    UnknownDockerError,
)
from .output import OutputKind, OutputLine
from .project import Project, TemplateError, detect_project, install_template
from .stream import StreamingPump

__all__ = [
    "ConfigLoader",
    "Settings",
    "StackEnv",
    "detect_stack_env",
    "get_config_loader",
    "ComposeResult",
    "ComposeRunner",
    "ComposeStream",
    "StackFileError",
    "ContainerNotFoundError",
    "ContainerSnapshot",
    "ContainerStatus",
    "ConflictError",
    "DaemonUnreachableError",
    "DockerClient",
    "DockerClientError",
    "DockerPermissionError",
    "DockerTimeoutError",
    "UnknownDockerError",
    "OutputKind",
    "OutputLine",
    "Project",
    "TemplateError",
    "detect_project",
    "install_template",
    "StreamingPump",
]
