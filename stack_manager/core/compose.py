"""Docker Compose stack lifecycle operations."""

import asyncio
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .output import COMPLETE_TEXT
from .platform import get_phpmyadmin_image
from .project import sanitize_project_name

logger = logging.getLogger(__name__)

# Lines buffered between the compose process and the dashboard
OUTPUT_BUFFER_SIZE = 100

OPERATIONS = {
    "up": ["up", "-d"],
    "down": ["down"],
    "restart": ["restart"],
    "destroy": ["down", "-v"],  # Removes volumes too
}


class StackFileError(Exception):
    """The compose file is missing, unreadable or not a file."""


@dataclass
class ComposeResult:
    """Result of a synchronous compose operation."""
    success: bool
    output: str = ""
    error: Optional[str] = None


def validate_stack_file(stack_file) -> Path:
    """Check that the compose file exists and can be read."""
    if not stack_file:
        raise StackFileError(
            "STACK_FILE not set and cannot be detected - please set STACK_FILE "
            "environment variable or run from stack directory"
        )

    path = Path(stack_file)
    if not path.exists():
        raise StackFileError(
            f"docker-compose file not found at {path} - please verify STACK_FILE path"
        )
    if path.is_dir():
        raise StackFileError(f"STACK_FILE points to a directory, not a file: {path}")

    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise StackFileError(f"docker-compose file at {path} is not readable: {e}") from e

    return path


def build_compose_env(code_dir: Path) -> dict[str, str]:
    """Environment for compose commands: CODE_DIR and COMPOSE_PROJECT_NAME."""
    env = dict(os.environ)
    env["CODE_DIR"] = str(code_dir)
    env["COMPOSE_PROJECT_NAME"] = sanitize_project_name(Path(code_dir).name)
    env.setdefault("PHPMYADMIN_IMAGE", get_phpmyadmin_image())
    return env


class ComposeStream:
    """Receive end of one streaming compose command.

    Nothing runs until start() is awaited. The command's stdout and stderr
    lines are relayed into a bounded queue in the order each pipe produces
    them, followed by "[Complete]" or an "ERROR: Command failed" line, and
    finally None once the channel is closed.
    """

    def __init__(
        self,
        command: list[str],
        env: dict[str, str],
        maxsize: int = OUTPUT_BUFFER_SIZE,
    ):
        self.command = command
        self.env = env
        self.maxsize = maxsize
        self.process: Optional[asyncio.subprocess.Process] = None
        self._queue: Optional[asyncio.Queue] = None
        self._relay: Optional[asyncio.Task] = None
        self._detached = False

    async def start(self) -> None:
        """Launch the command. A stream can only be started once."""
        if self._queue is not None:
            raise RuntimeError("compose stream already started")
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._relay = asyncio.create_task(self._run())

    async def get(self) -> Optional[str]:
        """Next output line, or None when the producer has closed the channel."""
        if self._queue is None:
            raise RuntimeError("compose stream not started")
        return await self._queue.get()

    def detach(self) -> None:
        """Stop delivering lines; the command runs on and its output is dropped."""
        self._detached = True
        if self._queue is None:
            return
        while not self._queue.empty():
            self._queue.get_nowait()

    async def wait_closed(self) -> None:
        """Wait until the command has exited and the channel is closed."""
        if self._relay is not None:
            await self._relay

    async def _put(self, line: Optional[str]) -> None:
        if self._detached:
            return
        await self._queue.put(line)

    async def _run(self) -> None:
        try:
            try:
                self.process = await asyncio.create_subprocess_exec(
                    *self.command,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=self.env,
                )
            except OSError as e:
                logger.error("Failed to start %s: %s", " ".join(self.command), e)
                await self._put(f"ERROR: Failed to start command: {e}")
                return

            await asyncio.gather(
                self._relay_lines(self.process.stdout),
                self._relay_lines(self.process.stderr),
            )

            returncode = await self.process.wait()
            logger.info("%s exited with %s", " ".join(self.command), returncode)
            if returncode != 0:
                await self._put(f"ERROR: Command failed: exit status {returncode}")
            else:
                await self._put(COMPLETE_TEXT)
        finally:
            await self._put(None)

    async def _relay_lines(self, reader: asyncio.StreamReader) -> None:
        try:
            async for raw in reader:
                await self._put(raw.decode(errors="replace").rstrip("\r\n"))
        except ValueError as e:
            # Line longer than the reader's limit
            await self._put(f"ERROR: Stream read error: {e}")


class ComposeRunner:
    """Runs docker compose against one stack file for one project directory."""

    def __init__(
        self,
        stack_file: Path,
        code_dir: Optional[Path] = None,
        docker_binary: str = "docker",
        timeout: float = 120.0,
    ):
        self.stack_file = Path(stack_file)
        self.code_dir = Path(code_dir) if code_dir is not None else Path.cwd()
        self.docker_binary = docker_binary
        self.timeout = timeout

    @property
    def project_name(self) -> str:
        """COMPOSE_PROJECT_NAME used for every command."""
        return sanitize_project_name(self.code_dir.name)

    def build_command(self, operation: str) -> list[str]:
        """Full argv for a compose operation."""
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown compose operation: {operation}")
        return [
            self.docker_binary, "compose", "-f", str(self.stack_file),
            *OPERATIONS[operation],
        ]

    def run(self, operation: str) -> ComposeResult:
        """Run a compose operation to completion, capturing combined output."""
        try:
            validate_stack_file(self.stack_file)
        except StackFileError as e:
            return ComposeResult(success=False, error=str(e))

        command = self.build_command(operation)
        logger.info("Running %s", " ".join(command))

        try:
            completed = subprocess.run(
                command,
                env=build_compose_env(self.code_dir),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode(errors="replace")
            return ComposeResult(
                success=False,
                output=output,
                error=f"docker compose {' '.join(OPERATIONS[operation])} timed out after {self.timeout:g}s",
            )
        except OSError as e:
            return ComposeResult(success=False, error=f"failed to run docker compose: {e}")

        if completed.returncode != 0:
            return ComposeResult(
                success=False,
                output=completed.stdout,
                error=(
                    f"docker compose {' '.join(OPERATIONS[operation])} failed: "
                    f"exit status {completed.returncode}"
                ),
            )
        return ComposeResult(success=True, output=completed.stdout)

    def up(self) -> ComposeResult:
        """Start the stack in detached mode."""
        return self.run("up")

    def down(self) -> ComposeResult:
        """Stop and remove containers and networks."""
        return self.run("down")

    def restart(self) -> ComposeResult:
        """Restart all services."""
        return self.run("restart")

    def destroy(self) -> ComposeResult:
        """Stop and remove containers, networks and ALL volumes."""
        return self.run("destroy")

    def stream(self, operation: str) -> ComposeStream:
        """Prepare a streaming compose operation.

        The stack file is validated here, before any process exists, so a
        missing file raises StackFileError and no stream is created.
        """
        validate_stack_file(self.stack_file)
        command = self.build_command(operation)
        logger.info("Streaming %s", " ".join(command))
        return ComposeStream(command, build_compose_env(self.code_dir))

    def stream_up(self) -> ComposeStream:
        return self.stream("up")

    def stream_down(self) -> ComposeStream:
        return self.stream("down")

    def stream_restart(self) -> ComposeStream:
        return self.stream("restart")

    def stream_destroy(self) -> ComposeStream:
        return self.stream("destroy")
