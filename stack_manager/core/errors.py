"""User-friendly error formatting for Docker and Compose failures."""

import re
from typing import Optional

_PORT_PATTERNS = (
    re.compile(r"port\s+(\d+)", re.IGNORECASE),
    re.compile(r":(\d+)"),
)

MAX_DETAIL_LENGTH = 100


def format_user_error(err: Optional[BaseException]) -> str:
    """Turn a Docker/Compose error into a short, actionable sentence."""
    if err is None:
        return ""

    text = str(err)
    lower = text.lower()

    if (
        "port is already allocated" in lower
        or "address already in use" in lower
    ):
        port = extract_port_number(text)
        if port:
            return f"Port {port} is already in use. Stop the conflicting service or use a different port."
        return "Port is already in use. Stop the conflicting service or use a different port."

    if _is_daemon_down(lower):
        return "Docker daemon is not running. Start Docker Desktop and try again."

    if "permission denied" in lower or "access is denied" in lower:
        return "Permission denied. Run Docker as your user or check socket permissions."

    if "timeout" in lower or "timed out" in lower or "context deadline exceeded" in lower:
        return "Operation timed out. The service may be unresponsive or taking too long to respond."

    if "no such container" in lower or "not found" in lower:
        return "Container not found. It may have been removed. Try refreshing the view."

    return format_unknown_error(text)


def format_action_error(err: BaseException, action: str, service: str) -> str:
    """Describe a failed start/stop/restart of a single container."""
    text = str(err)
    lower = text.lower()

    if "port is already allocated" in lower or "address already in use" in lower:
        return f"Port conflict: Cannot {action} '{service}'. Port already in use."

    if "timeout" in lower or "timed out" in lower or "context deadline exceeded" in lower:
        return f"Timeout: Container '{service}' took too long to {action}. Try again."

    if "no such container" in lower or "not found" in lower:
        return f"Container '{service}' not found. It may have been removed. Press 'r' to refresh."

    if "permission denied" in lower:
        return "Permission denied. Add your user to the docker group."

    if _is_daemon_down(lower):
        return format_user_error(err)

    return f"Failed to {action} '{service}': {_first_line(text)}"


def extract_port_number(text: str) -> str:
    """Pull a port number out of an error message, if one is mentioned."""
    for pattern in _PORT_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return ""


def format_unknown_error(text: str) -> str:
    """Generic fallback: one line of detail, at most 100 characters."""
    return f"An error occurred. Details: {_first_line(text)}"


def _first_line(text: str) -> str:
    details = text.split("\n")[0]
    if len(details) > MAX_DETAIL_LENGTH:
        details = details[:MAX_DETAIL_LENGTH - 3] + "..."
    return details


def _is_daemon_down(lower: str) -> bool:
    return (
        "cannot connect to the docker daemon" in lower
        or "is the docker daemon running" in lower
        or "docker daemon is not running" in lower
        or "docker daemon unreachable" in lower
        or ("connection refused" in lower and "docker" in lower)
        or "open //./pipe/docker_engine" in lower
        or ("the system cannot find the file specified" in lower and "docker" in lower)
    )
