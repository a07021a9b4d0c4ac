"""Turn raw Toggl entries into rounded Tickspot entry candidates."""

import locale
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any

from tikkle import MARKER
from tikkle.settings import SyncSettings
from tikkle.sync.mapping import IdentityMap, MappingKind
from tikkle.tickspot import TickspotClient, TickspotProject, TickspotTask
from tikkle.toggl import TogglClient, TogglProject, TogglTimeEntry

logger = logging.getLogger(__name__)


def round_duration(seconds: int, unit: int, up_fraction: float) -> int:
    """Round a duration to a multiple of unit.

    A remainder of at least unit * up_fraction rounds up, anything less rounds
    down.

    Args:
        seconds: Duration in seconds.
        unit: Rounding unit in seconds.
        up_fraction: Threshold fraction of the unit, between 0 and 1.
    """
    remainder = seconds % unit
    if remainder and remainder >= unit * up_fraction:
        return seconds + (unit - remainder)
    return seconds - remainder


def compose_notes(descriptions: Iterable[str | None]) -> str:
    """Build entry notes: the marker line, then each distinct description."""
    notes = [MARKER]
    for description in descriptions:
        if description and description not in notes[1:]:
            notes.append(description)
    return "\n".join(notes)


@dataclass
class Candidate:
    """A Tickspot entry that sync wants to exist."""

    date: str
    hours: float
    task_id: int
    notes: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "hours": self.hours,
            "task_id": self.task_id,
            "notes": self.notes,
        }


@dataclass
class ResolvedEntry:
    """A Toggl entry together with the records it maps to on both sides."""

    entry: TogglTimeEntry
    toggl_client: TogglClient
    toggl_project: TogglProject
    client: TickspotClient
    project: TickspotProject
    task: TickspotTask


@dataclass
class AggregatedEntry:
    """A candidate and the resolved Toggl entries it was built from."""

    candidate: Candidate
    sources: list[ResolvedEntry] = field(default_factory=list)

    @property
    def client_name(self) -> str:
        return self.sources[0].client.name

    @property
    def project_name(self) -> str:
        return self.sources[0].project.name

    @property
    def task_name(self) -> str:
        return self.sources[0].task.name

    @property
    def descriptions(self) -> list[str]:
        """The description lines of the candidate notes."""
        return self.candidate.notes.split("\n")[1:]

    def sort_key(self) -> tuple[Any, ...]:
        return (
            self.candidate.date,
            locale.strxfrm(self.client_name),
            locale.strxfrm(self.project_name),
            locale.strxfrm(self.task_name),
            self.sources[0].entry.stop,
        )


class HierarchyIndex:
    """Lookups from a Toggl project back to the Tickspot records it mirrors."""

    def __init__(
        self,
        mapping: IdentityMap,
        toggl_clients: Iterable[TogglClient],
        toggl_projects: Iterable[TogglProject],
        clients: Iterable[TickspotClient],
        projects: Iterable[TickspotProject],
        tasks: Iterable[TickspotTask],
    ) -> None:
        self.client_sources = mapping.reverse(MappingKind.CLIENTS)
        self.task_sources = mapping.reverse(MappingKind.TASKS)
        self.toggl_clients = {c.id: c for c in toggl_clients}
        self.toggl_projects = {p.id: p for p in toggl_projects}
        self.clients = {c.id: c for c in clients}
        self.projects = {p.id: p for p in projects}
        self.tasks = {t.id: t for t in tasks}

    def resolve(self, entry: TogglTimeEntry) -> ResolvedEntry | None:
        """Resolve an entry, or None if it is outside the mirrored hierarchy."""
        if entry.project_id is None:
            return None

        toggl_project = self.toggl_projects.get(entry.project_id)
        if toggl_project is None or toggl_project.client_id is None:
            return None
        toggl_client = self.toggl_clients.get(toggl_project.client_id)
        if toggl_client is None:
            return None

        client = self.clients.get(self.client_sources.get(toggl_client.id))
        task = self.tasks.get(self.task_sources.get(toggl_project.id))
        if client is None or task is None:
            return None
        project = self.projects.get(task.project_id)
        if project is None or project.client_id != client.id:
            return None

        return ResolvedEntry(entry, toggl_client, toggl_project, client, project, task)


class TimeEntryAggregator:
    """Resolves, groups, sums and rounds Toggl entries."""

    def __init__(self, settings: SyncSettings, tz: tzinfo | None = None) -> None:
        """Initialize the aggregator.

        Args:
            settings: Rounding and grouping settings.
            tz: Timezone deciding which day an entry belongs to. Defaults to
                the local timezone.
        """
        self.settings = settings
        self.tz = tz

    def aggregate(
        self, entries: Iterable[TogglTimeEntry], index: HierarchyIndex
    ) -> list[AggregatedEntry]:
        """Build one candidate per group of entries, sorted for display.

        Entries without a stop time or outside the mirrored hierarchy are
        dropped.
        """
        groups: dict[tuple[Any, ...], list[ResolvedEntry]] = {}

        for entry in entries:
            if entry.is_running:
                logger.debug(f"Ignoring running entry {entry.id}")
                continue
            resolved = index.resolve(entry)
            if resolved is None:
                logger.debug(f"Ignoring entry {entry.id} outside the mirrored hierarchy")
                continue
            groups.setdefault(self._group_key(resolved), []).append(resolved)

        aggregated = [self._build(members) for members in groups.values()]
        aggregated.sort(key=AggregatedEntry.sort_key)
        return aggregated

    def _stop_date(self, entry: TogglTimeEntry) -> str:
        return entry.stop.astimezone(self.tz).date().isoformat()

    def _group_key(self, resolved: ResolvedEntry) -> tuple[Any, ...]:
        key: tuple[Any, ...] = (resolved.toggl_project.id, self._stop_date(resolved.entry))
        if not self.settings.grouping:
            # None and "" compose to the same notes
            key += (resolved.entry.description or "",)
        return key

    def _build(self, members: list[ResolvedEntry]) -> AggregatedEntry:
        first = members[0]
        total = sum(m.entry.duration for m in members)
        rounded = round_duration(total, self.settings.rounding, self.settings.round_up_by)

        if self.settings.grouping:
            notes = compose_notes(m.entry.description for m in members)
        else:
            notes = compose_notes([first.entry.description])

        candidate = Candidate(
            date=self._stop_date(first.entry),
            hours=rounded / 3600,
            task_id=first.task.id,
            notes=notes,
        )
        logger.debug(f"{len(members)} entries, {total}s -> {rounded}s for task {first.task.id}")
        return AggregatedEntry(candidate, members)
