"""Mirror the allow-listed Tickspot hierarchy into Toggl.

Every allow-listed Tickspot client becomes a Toggl client, and every task of an
allow-listed project becomes a Toggl project named ``"<project> // <task>"``
under that client. A Toggl project is active only while its Tickspot client is
not archived and neither its project nor its task is closed.

Toggl records are found either through the mapping persisted by a previous run
or, before any mapping exists, by exact name. The choice is made once per run.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from tikkle.settings import AllowedClient
from tikkle.sync.decision import Decision
from tikkle.sync.mapping import IdentityMap, MappingKind
from tikkle.tickspot import TickspotAPI, TickspotClient, TickspotProject, TickspotTask
from tikkle.toggl import TogglAPI, TogglClient, TogglProject

logger = logging.getLogger(__name__)

PROJECT_NAME_SEPARATOR = " // "


def mirrored_project_name(project: TickspotProject, task: TickspotTask) -> str:
    """Toggl project name for a Tickspot project/task pair."""
    return f"{project.name}{PROJECT_NAME_SEPARATOR}{task.name}"


def mirrored_active(client: TickspotClient, project: TickspotProject, task: TickspotTask) -> bool:
    """Whether the Toggl project mirroring a task should be active."""
    return not client.archive and not project.closed and not task.closed


@dataclass
class MirrorDecision:
    """A single create/update/skip/delete decision on a Toggl record."""

    decision: Decision
    kind: MappingKind
    name: str
    toggl_id: int | None = None
    active: bool = True


@dataclass
class MirrorResult:
    """Outcome of a mirror or purge pass."""

    mapping: IdentityMap = field(default_factory=IdentityMap)
    decisions: list[MirrorDecision] = field(default_factory=list)

    def count(self, decision: Decision) -> int:
        return Counter(d.decision for d in self.decisions)[decision]

    def __str__(self) -> str:
        return (
            f"Created: {self.count(Decision.CREATE)}, "
            f"Updated: {self.count(Decision.UPDATE)}, "
            f"Skipped: {self.count(Decision.SKIP)}"
        )


class ResolutionStrategy(ABC):
    """Finds the Toggl record that corresponds to a Tickspot record."""

    @abstractmethod
    def find_client(
        self, client: TickspotClient, candidates: list[TogglClient]
    ) -> TogglClient | None:
        """Find the Toggl client mirroring a Tickspot client."""

    @abstractmethod
    def find_project(
        self, task: TickspotTask, name: str, candidates: list[TogglProject]
    ) -> TogglProject | None:
        """Find the Toggl project mirroring a Tickspot task.

        Args:
            task: Tickspot task.
            name: Expected Toggl project name.
            candidates: Toggl projects of the mirrored client.
        """


class MappingResolution(ResolutionStrategy):
    """Resolve by the IDs recorded in a persisted mapping."""

    def __init__(self, mapping: IdentityMap) -> None:
        self.mapping = mapping

    def find_client(self, client, candidates):
        toggl_id = self.mapping.resolve(MappingKind.CLIENTS, client.id)
        return next((c for c in candidates if c.id == toggl_id), None)

    def find_project(self, task, name, candidates):
        toggl_id = self.mapping.resolve(MappingKind.TASKS, task.id)
        return next((p for p in candidates if p.id == toggl_id), None)


class NameResolution(ResolutionStrategy):
    """Resolve by exact name, used until a mapping has been persisted."""

    def find_client(self, client, candidates):
        return next((c for c in candidates if c.name == client.name), None)

    def find_project(self, task, name, candidates):
        return next((p for p in candidates if p.name == name), None)


def select_strategy(mapping: IdentityMap | None) -> ResolutionStrategy:
    """Pick the resolution strategy for a run.

    Args:
        mapping: The persisted mapping, or None if there is none yet.
    """
    if mapping is None:
        return NameResolution()
    return MappingResolution(mapping)


class HierarchyMirror:
    """Creates and updates Toggl clients/projects to match Tickspot."""

    def __init__(
        self,
        tickspot: TickspotAPI,
        toggl: TogglAPI,
        allowed_clients: list[AllowedClient],
        on_decision: Callable[[MirrorDecision], None] | None = None,
    ) -> None:
        """Initialize the mirror.

        Args:
            tickspot: Tickspot API client.
            toggl: Toggl API client.
            allowed_clients: The allow-list, processed in order.
            on_decision: Called with each decision as soon as it is applied.
        """
        self.tickspot = tickspot
        self.toggl = toggl
        self.allowed_clients = allowed_clients
        self.on_decision = on_decision

    def run(self, mapping: IdentityMap | None) -> MirrorResult:
        """Mirror the allow-listed hierarchy.

        The returned mapping is built from scratch; persisting it is left to
        the caller once the pass has completed.

        Args:
            mapping: The persisted mapping, or None before the first run.

        Raises:
            httpx.HTTPError: If any API request fails.
        """
        strategy = select_strategy(mapping)
        logger.info(f"Mirroring {len(self.allowed_clients)} clients using {type(strategy).__name__}")

        result = MirrorResult()
        toggl_clients = self.toggl.list_clients()

        for allowed in self.allowed_clients:
            client = self.tickspot.get_client(allowed.client_id)
            toggl_client, created = self._mirror_client(client, toggl_clients, strategy, result)
            toggl_projects = [] if created else self.toggl.list_client_projects(toggl_client.id)

            for project_id in allowed.project_ids:
                project = self.tickspot.get_project(project_id)
                if project.client_id != client.id:
                    logger.warning(
                        f"Project {project.name} ({project.id}) does not belong to "
                        f"client {client.name} ({client.id}), ignoring it"
                    )
                    continue

                for task in self.tickspot.get_project_tasks(project.id):
                    self._mirror_task(client, project, task, toggl_client, toggl_projects, strategy, result)

        logger.info(f"Mirror complete: {result}")
        return result

    def _mirror_client(
        self,
        client: TickspotClient,
        toggl_clients: list[TogglClient],
        strategy: ResolutionStrategy,
        result: MirrorResult,
    ) -> tuple[TogglClient, bool]:
        existing = strategy.find_client(client, toggl_clients)

        if existing is None:
            target = self.toggl.create_client(client.name)
            toggl_clients.append(target)
            decision = Decision.CREATE
        elif existing.name != client.name:
            target = self.toggl.update_client(existing.id, client.name)
            decision = Decision.UPDATE
        else:
            target = existing
            decision = Decision.SKIP

        result.mapping.record(MappingKind.CLIENTS, client.id, target.id)
        self._report(result, MirrorDecision(decision, MappingKind.CLIENTS, client.name, target.id))
        return target, decision is Decision.CREATE

    def _mirror_task(
        self,
        client: TickspotClient,
        project: TickspotProject,
        task: TickspotTask,
        toggl_client: TogglClient,
        toggl_projects: list[TogglProject],
        strategy: ResolutionStrategy,
        result: MirrorResult,
    ) -> None:
        name = mirrored_project_name(project, task)
        active = mirrored_active(client, project, task)
        existing = strategy.find_project(task, name, toggl_projects)

        if existing is None:
            target = self.toggl.create_project(name, toggl_client.id, active)
            toggl_projects.append(target)
            decision = Decision.CREATE
        elif existing.name != name or existing.active != active:
            target = self.toggl.update_project(existing.id, name, active)
            decision = Decision.UPDATE
        else:
            target = existing
            decision = Decision.SKIP

        result.mapping.record(MappingKind.TASKS, task.id, target.id)
        result.mapping.record(MappingKind.PROJECTS, project.id, target.id)
        self._report(result, MirrorDecision(decision, MappingKind.TASKS, name, target.id, active))

    def _report(self, result: MirrorResult, decision: MirrorDecision) -> None:
        logger.info(f"{decision.decision.value}: {decision.kind.value} {decision.name} -> {decision.toggl_id}")
        result.decisions.append(decision)
        if self.on_decision:
            self.on_decision(decision)


class HierarchyPurge:
    """Deletes the Toggl clients and projects recorded in a mapping.

    Nothing absent from the mapping is deleted. A client that still holds
    projects tikkle did not create is kept.
    """

    def __init__(
        self,
        toggl: TogglAPI,
        on_decision: Callable[[MirrorDecision], None] | None = None,
    ) -> None:
        self.toggl = toggl
        self.on_decision = on_decision

    def run(self, mapping: IdentityMap) -> MirrorResult:
        """Delete every mirrored record that still exists in Toggl.

        Raises:
            httpx.HTTPError: If any API request fails.
        """
        result = MirrorResult(mapping=mapping)
        mirrored_projects = mapping.targets(MappingKind.TASKS) | mapping.targets(MappingKind.PROJECTS)
        toggl_clients = {c.id: c for c in self.toggl.list_clients()}

        for toggl_id in mapping.reverse(MappingKind.CLIENTS):
            toggl_client = toggl_clients.get(toggl_id)
            if toggl_client is None:
                self._report(result, MirrorDecision(Decision.MISSING, MappingKind.CLIENTS, str(toggl_id), toggl_id))
                continue

            foreign = False
            for project in self.toggl.list_client_projects(toggl_client.id):
                if project.id not in mirrored_projects:
                    foreign = True
                    continue
                self.toggl.delete_project(project.id)
                self._report(result, MirrorDecision(Decision.DELETE, MappingKind.TASKS, project.name, project.id))

            if foreign:
                logger.warning(f"Keeping client {toggl_client.name}, it has projects tikkle did not create")
                self._report(
                    result,
                    MirrorDecision(Decision.SKIP, MappingKind.CLIENTS, toggl_client.name, toggl_client.id),
                )
                continue

            self.toggl.delete_client(toggl_client.id)
            self._report(
                result,
                MirrorDecision(Decision.DELETE, MappingKind.CLIENTS, toggl_client.name, toggl_client.id),
            )

        return result

    def _report(self, result: MirrorResult, decision: MirrorDecision) -> None:
        logger.info(f"{decision.decision.value}: {decision.kind.value} {decision.name}")
        result.decisions.append(decision)
        if self.on_decision:
            self.on_decision(decision)
