"""Command line entry point."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from . import __version__
from .core.compose import OPERATIONS, ComposeRunner
from .core.config_loader import LOG_LEVELS, detect_stack_env, get_config_loader
from .core.docker_client import DockerClient, DockerClientError
from .core.errors import format_user_error
from .core.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stack-manager",
        description="Terminal dashboard for the local Docker Compose stack.",
    )
    parser.add_argument(
        "operation",
        nargs="?",
        choices=sorted(OPERATIONS),
        help="run one compose operation without the dashboard and exit",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="directory holding settings.yaml (default: ~/.config/stack-manager)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="override the configured log level",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="do not ask before 'destroy' in non-interactive mode",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run_operation(runner: ComposeRunner, operation: str, assume_yes: bool) -> int:
    """Run one compose operation synchronously, printing its output."""
    if operation == "destroy" and not assume_yes:
        answer = input(f"Destroy stack '{runner.project_name}' and ALL its volumes? Type 'destroy': ")
        if answer.strip() != "destroy":
            print("Aborted.")
            return 1

    result = runner.run(operation)
    if result.output:
        print(result.output, end="" if result.output.endswith("\n") else "\n")
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config_loader = get_config_loader(args.config_dir)
    try:
        settings = config_loader.load_settings()
    except (ValidationError, yaml.YAMLError) as e:
        print(f"Invalid configuration in {config_loader.config_dir}: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level})
    configure_logging(settings, config_loader.log_path)

    stack_env = detect_stack_env(settings)
    runner = ComposeRunner(
        stack_env.stack_file,
        code_dir=Path.cwd(),
        docker_binary=settings.docker_binary,
        timeout=settings.compose_timeout,
    )

    if args.operation:
        return run_operation(runner, args.operation, args.yes)

    try:
        docker_client = DockerClient.from_env(timeout=settings.docker_timeout)
    except DockerClientError as e:
        logger.error("Docker connection failed: %s", e)
        print(f"Error initializing TUI: {format_user_error(e)}", file=sys.stderr)
        return 1

    # Imported late so the non-interactive path does not load Textual
    from .tui import run_app

    run_app(docker_client, runner, stack_env, settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
