"""Project detection, name sanitizing and template installation."""

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PUBLIC_HTML = "public_html"
TEMPLATE_DIR = Path("demo-site-folder") / PUBLIC_HTML

_INVALID_CHARS = re.compile(r"[^a-z0-9]+")
_SEPARATOR_RUNS = re.compile(r"[-_]+")
_LEADING_DIGITS = re.compile(r"^(\d+)-?(.*)$")


class TemplateError(Exception):
    """Raised when the starter template cannot be found or copied."""


@dataclass
class Project:
    """A detected project directory."""
    name: str  # Sanitized, usable as COMPOSE_PROJECT_NAME
    path: Path
    has_public_html: bool


def sanitize_project_name(name: str) -> str:
    """Turn a directory name into a valid Docker Compose project name.

    Lowercases, replaces anything outside [a-z0-9] with hyphens, collapses
    separator runs and moves leading digits to the end ("2024site" becomes
    "site-2024"). Names that end up empty become "project".
    """
    if not name:
        return "project"

    name = name.lower()
    name = _INVALID_CHARS.sub("-", name)
    name = _SEPARATOR_RUNS.sub("-", name)
    name = name.strip("-")

    match = _LEADING_DIGITS.match(name)
    if match:
        digits, rest = match.groups()
        name = f"{rest}-{digits}" if rest else f"p{digits}"

    name = name.lstrip("-")
    return name or "project"


def detect_project(path: Optional[Path] = None) -> Project:
    """Detect the project rooted at path (defaults to the working directory)."""
    root = Path(path) if path is not None else Path.cwd()
    root = root.absolute()

    project = Project(
        name=sanitize_project_name(root.name),
        path=root,
        has_public_html=(root / PUBLIC_HTML).is_dir(),
    )
    logger.debug("Detected project %s at %s (public_html=%s)",
                 project.name, project.path, project.has_public_html)
    return project


def find_template_path(stack_home: Path) -> Path:
    """Locate the demo public_html template shipped with the stack."""
    template = Path(stack_home) / TEMPLATE_DIR
    if template.is_dir():
        return template
    raise TemplateError(f"template not found at {template}")


def install_template(project_root: Path, stack_home: Path) -> Path:
    """Copy the demo template into <project_root>/public_html.

    Files already present in public_html are overwritten; permissions of the
    template files are preserved.
    """
    template = find_template_path(stack_home)
    destination = Path(project_root) / PUBLIC_HTML

    try:
        shutil.copytree(template, destination, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise TemplateError(f"failed to copy template into {destination}: {e}") from e

    logger.info("Installed template from %s into %s", template, destination)
    return destination
