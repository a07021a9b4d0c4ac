"""Pytest configuration and fixtures."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from tikkle.config import Config
from tikkle.settings import AllowedClient
from tikkle.sync import IdentityMap, MappingKind
from tikkle.tickspot import TickspotClient, TickspotEntry, TickspotProject, TickspotTask
from tikkle.toggl import TogglClient, TogglProject, TogglTimeEntry
from tikkle.utils import StorageManager


class FakeTickspot:
    """In-memory stand-in for TickspotAPI."""

    def __init__(self) -> None:
        self.clients: dict[int, TickspotClient] = {}
        self.projects: dict[int, TickspotProject] = {}
        self.tasks: dict[int, TickspotTask] = {}
        self.entries: list[TickspotEntry] = []
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[int, dict[str, Any]]] = []
        self.listed: list[tuple[Any, Any]] = []

    def get_client(self, client_id: int) -> TickspotClient:
        return self.clients[client_id]

    def get_project(self, project_id: int) -> TickspotProject:
        return self.projects[project_id]

    def get_project_tasks(self, project_id: int) -> list[TickspotTask]:
        return [t for t in self.tasks.values() if t.project_id == project_id]

    def list_entries(self, start, end) -> list[TickspotEntry]:
        self.listed.append((start, end))
        return [e for e in self.entries if start.isoformat() <= e.day <= end.isoformat()]

    def create_entry(self, entry: dict[str, Any]) -> TickspotEntry:
        self.created.append(entry)
        created = TickspotEntry(id=9000 + len(self.entries), **entry)
        self.entries.append(created)
        return created

    def update_entry(self, entry_id: int, entry: dict[str, Any]) -> TickspotEntry:
        self.updated.append((entry_id, entry))
        updated = TickspotEntry(id=entry_id, **entry)
        self.entries = [updated if e.id == entry_id else e for e in self.entries]
        return updated

    def __enter__(self) -> "FakeTickspot":
        return self

    def __exit__(self, *args: Any) -> None:
        pass


class FakeToggl:
    """In-memory stand-in for TogglAPI."""

    def __init__(self) -> None:
        self.clients: dict[int, TogglClient] = {}
        self.projects: dict[int, TogglProject] = {}
        self.time_entries: list[TogglTimeEntry] = []
        self.writes: list[tuple[str, int]] = []
        self._next_id = 1000

    def _id(self) -> int:
        self._next_id += 1
        return self._next_id

    def list_clients(self) -> list[TogglClient]:
        return list(self.clients.values())

    def list_client_projects(self, client_id: int) -> list[TogglProject]:
        return [p for p in self.projects.values() if p.client_id == client_id]

    def create_client(self, name: str) -> TogglClient:
        client = TogglClient(id=self._id(), name=name, notes="@Tikkle")
        self.clients[client.id] = client
        self.writes.append(("create_client", client.id))
        return client

    def update_client(self, client_id: int, name: str) -> TogglClient:
        client = self.clients[client_id].model_copy(update={"name": name})
        self.clients[client_id] = client
        self.writes.append(("update_client", client_id))
        return client

    def delete_client(self, client_id: int) -> None:
        del self.clients[client_id]
        self.writes.append(("delete_client", client_id))

    def create_project(self, name: str, client_id: int, active: bool = True) -> TogglProject:
        project = TogglProject(id=self._id(), name=name, client_id=client_id, active=active)
        self.projects[project.id] = project
        self.writes.append(("create_project", project.id))
        return project

    def update_project(self, project_id: int, name: str, active: bool) -> TogglProject:
        project = self.projects[project_id].model_copy(update={"name": name, "active": active})
        self.projects[project_id] = project
        self.writes.append(("update_project", project_id))
        return project

    def delete_project(self, project_id: int) -> None:
        del self.projects[project_id]
        self.writes.append(("delete_project", project_id))

    def list_time_entries(self, start: datetime, end: datetime) -> list[TogglTimeEntry]:
        return list(self.time_entries)

    def __enter__(self) -> "FakeToggl":
        return self

    def __exit__(self, *args: Any) -> None:
        pass


@pytest.fixture
def temp_config_dir() -> Path:
    """Create a temporary configuration directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_manager(temp_config_dir: Path) -> StorageManager:
    """Create a storage manager with temporary directory."""
    return StorageManager(temp_config_dir)


@pytest.fixture
def config(temp_config_dir: Path) -> Config:
    """Create a config instance with temporary directory."""
    return Config(temp_config_dir)


@pytest.fixture
def tickspot() -> FakeTickspot:
    """Tickspot holding client Acme with project Website and two tasks."""
    fake = FakeTickspot()
    fake.clients[1] = TickspotClient(id=1, name="Acme")
    fake.projects[10] = TickspotProject(id=10, name="Website", client_id=1)
    fake.tasks[100] = TickspotTask(id=100, name="Design", project_id=10)
    fake.tasks[101] = TickspotTask(id=101, name="Build", project_id=10)
    return fake


@pytest.fixture
def toggl() -> FakeToggl:
    """An empty Toggl workspace."""
    return FakeToggl()


@pytest.fixture
def allowed_clients() -> list[AllowedClient]:
    """Allow-list selecting Acme / Website."""
    return [AllowedClient(client_id=1, project_ids=[10])]


@pytest.fixture
def mirrored(toggl: FakeToggl) -> IdentityMap:
    """Toggl state and mapping as left by a setup run over the tickspot fixture."""
    toggl.clients[500] = TogglClient(id=500, name="Acme", notes="@Tikkle")
    toggl.projects[600] = TogglProject(id=600, name="Website // Design", client_id=500)
    toggl.projects[601] = TogglProject(id=601, name="Website // Build", client_id=500)

    mapping = IdentityMap()
    mapping.record(MappingKind.CLIENTS, 1, 500)
    mapping.record(MappingKind.TASKS, 100, 600)
    mapping.record(MappingKind.TASKS, 101, 601)
    mapping.record(MappingKind.PROJECTS, 10, 601)
    return mapping


def make_entry(
    entry_id: int,
    project_id: int | None,
    stop: str,
    duration: int,
    description: str | None = None,
) -> TogglTimeEntry:
    """Build a stopped Toggl entry from its stop time (ISO, UTC) and duration."""
    stop_time = datetime.fromisoformat(stop.replace("Z", "+00:00"))
    return TogglTimeEntry(
        id=entry_id,
        project_id=project_id,
        start=stop_time - timedelta(seconds=duration),
        stop=stop_time,
        duration=duration,
        description=description,
    )
