"""Docker Engine client for container lifecycle and status."""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import docker
import requests
from docker.errors import APIError, DockerException, NotFound

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_STOP_TIMEOUT = 10

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"


# =============================================================================
# Errors
# =============================================================================

class DockerClientError(Exception):
    """Base class for errors raised by the Docker client."""

    default_message = "unknown docker error"

    def __init__(self, message: Optional[str] = None, detail: str = ""):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


class DaemonUnreachableError(DockerClientError):
    """The Docker daemon is not running or its socket is missing."""
    default_message = "docker daemon unreachable"


class DockerPermissionError(DockerClientError):
    """No permission to use the Docker socket."""
    default_message = "permission denied to access docker"


class DockerTimeoutError(DockerClientError):
    """The daemon did not answer in time."""
    default_message = "docker operation timed out"


class ContainerNotFoundError(DockerClientError):
    """The container no longer exists."""
    default_message = "container not found"


class ConflictError(DockerClientError):
    """A resource conflict, typically a port that is already allocated."""
    default_message = "conflict"


class UnknownDockerError(DockerClientError):
    """Anything not covered by the other error types."""


def classify_error(err: Exception) -> DockerClientError:
    """Map Docker SDK / transport errors onto the client's error types."""
    if isinstance(err, DockerClientError):
        return err

    detail = str(err)
    lower = detail.lower()

    if "permission denied" in lower:
        return DockerPermissionError(detail=detail)
    if isinstance(err, requests.exceptions.Timeout):
        return DockerTimeoutError(detail=detail)
    if isinstance(err, NotFound):
        return ContainerNotFoundError(detail=detail)
    if isinstance(err, APIError) and err.status_code == 409:
        return ConflictError(detail=detail)
    if (
        "cannot connect to the docker daemon" in lower
        or "open //./pipe/docker_engine" in lower
        or "the system cannot find the file specified" in lower
        or "connection refused" in lower
        or "no such file or directory" in lower
    ):
        return DaemonUnreachableError(detail=detail)
    if isinstance(err, requests.exceptions.ConnectionError):
        return DaemonUnreachableError(detail=detail)
    if "timeout" in lower or "timed out" in lower:
        return DockerTimeoutError(detail=detail)
    if "not found" in lower or "no such container" in lower:
        return ContainerNotFoundError(detail=detail)
    if "port is already allocated" in lower or "address already in use" in lower:
        return ConflictError(detail=detail)
    return UnknownDockerError(detail=detail)


# =============================================================================
# Container model
# =============================================================================

class ContainerStatus(Enum):
    """Normalized container status for the UI."""
    RUNNING = "running"
    STOPPED = "stopped"
    RESTARTING = "restarting"
    ERROR = "error"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class ContainerSnapshot:
    """Point-in-time view of one container of the stack."""
    id: str
    service: str
    name: str = ""
    image: str = ""
    status: ContainerStatus = ContainerStatus.UNKNOWN
    state: str = ""  # Raw status text, e.g. "Up 5 minutes"
    url: str = ""
    cpu_percent: float = 0.0

    @property
    def running(self) -> bool:
        return self.status == ContainerStatus.RUNNING


def map_docker_state(state: str) -> ContainerStatus:
    """Map the engine's State field onto ContainerStatus."""
    state = (state or "").strip().lower()
    if state == "running":
        return ContainerStatus.RUNNING
    if state == "restarting":
        return ContainerStatus.RESTARTING
    if state in ("exited", "created", "paused", "dead"):
        return ContainerStatus.STOPPED
    return ContainerStatus.ERROR


def resolve_port(ports: Optional[list], container_port: int, env_var: str, default: str) -> str:
    """Host port for a container port: published binding, then env var, then default."""
    for port in ports or []:
        if port.get("PrivatePort") == container_port and (port.get("PublicPort") or 0) > 0:
            return str(port["PublicPort"])
    return os.environ.get(env_var) or default


def access_url(service: str, ports: Optional[list] = None) -> str:
    """Where a service of the stack can be reached from the host.

    `ports` is the Ports list of the engine's container summary.
    """
    service = service.lower()
    if "nginx" in service:
        return f"http://localhost:{resolve_port(ports, 80, 'HOST_PORT', '80')}"
    if "phpmyadmin" in service:
        return f"http://localhost:{resolve_port(ports, 80, 'PMA_PORT', '8081')}"
    if "mariadb" in service or "mysql" in service:
        return f"localhost:{resolve_port(ports, 3306, 'MYSQL_PORT', '3306')}"
    if "apache" in service:
        return "internal"  # Proxied through nginx
    return ""


def calculate_cpu_percent(stats: dict) -> float:
    """CPU usage from a one-shot stats sample, computed like `docker stats`."""
    cpu_stats = stats.get("cpu_stats") or {}
    precpu_stats = stats.get("precpu_stats") or {}
    cpu_usage = cpu_stats.get("cpu_usage") or {}
    precpu_usage = precpu_stats.get("cpu_usage") or {}

    cpu_delta = cpu_usage.get("total_usage", 0) - precpu_usage.get("total_usage", 0)
    system_delta = cpu_stats.get("system_cpu_usage", 0) - precpu_stats.get("system_cpu_usage", 0)

    if system_delta > 0 and cpu_delta > 0:
        num_cpus = len(cpu_usage.get("percpu_usage") or []) or 1
        return (cpu_delta / system_delta) * num_cpus * 100.0
    return 0.0


def _container_name(names: Optional[list]) -> str:
    for name in names or []:
        trimmed = name.lstrip("/")
        if trimmed:
            return trimmed
    return ""


def snapshot_from_summary(summary: dict) -> ContainerSnapshot:
    """Build a snapshot from one entry of the engine's container list."""
    labels = summary.get("Labels") or {}
    name = _container_name(summary.get("Names"))
    service = labels.get(SERVICE_LABEL) or name or summary.get("Id", "")
    return ContainerSnapshot(
        id=summary.get("Id", ""),
        service=service,
        name=name,
        image=summary.get("Image", ""),
        status=map_docker_state(summary.get("State", "")),
        state=summary.get("Status", ""),
        url=access_url(service, summary.get("Ports")),
    )


# =============================================================================
# Client
# =============================================================================

class DockerClient:
    """Thin wrapper over the Docker SDK's low-level API.

    Every call is bounded by the client timeout and raises a
    DockerClientError subclass on failure.
    """

    def __init__(self, api, timeout: float = DEFAULT_TIMEOUT):
        """Wrap an already connected docker.APIClient."""
        self.api = api
        self.timeout = timeout

    @classmethod
    def from_env(cls, timeout: float = DEFAULT_TIMEOUT) -> "DockerClient":
        """Connect using DOCKER_HOST & co. and check the daemon answers."""
        try:
            client = docker.from_env(timeout=timeout)
            client.ping()
        except (DockerException, requests.exceptions.RequestException) as e:
            raise classify_error(e) from e
        logger.info("Connected to Docker daemon")
        return cls(client.api, timeout)

    def _call(self, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (DockerException, requests.exceptions.RequestException) as e:
            error = classify_error(e)
            logger.warning("Docker call %s failed: %s", getattr(func, "__name__", func), error)
            raise error from e

    def ping(self) -> None:
        """Check connectivity with the daemon."""
        self._call(self.api.ping)

    def list_containers(self, project: str) -> list[ContainerSnapshot]:
        """All containers (running or not) of a compose project."""
        filters = {}
        if project.strip():
            filters["label"] = f"{PROJECT_LABEL}={project}"

        summaries = self._call(self.api.containers, all=True, filters=filters)
        return [snapshot_from_summary(summary) for summary in summaries]

    def list_containers_with_stats(self, project: str) -> list[ContainerSnapshot]:
        """Like list_containers, with CPU% filled in for running containers."""
        containers = self.list_containers(project)
        for container in containers:
            if not container.running:
                continue
            try:
                container.cpu_percent = self.get_container_cpu(container.id)
            except DockerClientError:
                # One bad sample should not hide the whole stack
                container.cpu_percent = 0.0
        return containers

    def get_container_cpu(self, container_id: str) -> float:
        """CPU percentage from a one-shot stats sample."""
        stats = self._call(self.api.stats, container_id, stream=False)
        return calculate_cpu_percent(stats or {})

    def start_container(self, container_id: str) -> None:
        """Start a stopped container."""
        self._call(self.api.start, container_id)

    def stop_container(self, container_id: str, timeout: int = DEFAULT_STOP_TIMEOUT) -> None:
        """Stop a container, waiting up to timeout seconds before it is killed."""
        self._call(self.api.stop, container_id, timeout=_normalize_timeout(timeout))

    def restart_container(self, container_id: str, timeout: int = DEFAULT_STOP_TIMEOUT) -> None:
        """Restart a container, waiting up to timeout seconds for the stop."""
        self._call(self.api.restart, container_id, timeout=_normalize_timeout(timeout))


def _normalize_timeout(timeout: int) -> int:
    return timeout if timeout > 0 else DEFAULT_STOP_TIMEOUT
