"""Shared fixtures for stack-manager tests."""

import pytest

from stack_manager.core.compose import ComposeRunner
from stack_manager.core.docker_client import ContainerSnapshot, ContainerStatus
from stack_manager.core.project import Project


@pytest.fixture
def stack_file(tmp_path):
    path = tmp_path / "stack" / "docker-compose.yml"
    path.parent.mkdir()
    path.write_text("services:\n  nginx:\n    image: nginx\n")
    return path


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "My Site"
    (path / "public_html").mkdir(parents=True)
    return path


@pytest.fixture
def runner(stack_file, project_dir):
    return ComposeRunner(stack_file, code_dir=project_dir)


@pytest.fixture
def project(project_dir):
    return Project(name="my-site", path=project_dir, has_public_html=True)


def make_container(
    container_id: str,
    service: str,
    status: ContainerStatus = ContainerStatus.RUNNING,
    url: str = "",
) -> ContainerSnapshot:
    return ContainerSnapshot(
        id=container_id,
        service=service,
        name=f"my-site-{service}-1",
        image=f"{service}:latest",
        status=status,
        state="Up 2 minutes" if status == ContainerStatus.RUNNING else "Exited (0)",
        url=url,
    )
