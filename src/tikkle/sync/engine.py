"""Sync engine writing aggregated Toggl time into Tickspot."""

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, tzinfo

import httpx

from tikkle.errors import ConfigurationError, InvalidDateRangeError
from tikkle.settings import AllowedClient, SyncSettings
from tikkle.sync.aggregator import AggregatedEntry, Candidate, HierarchyIndex, TimeEntryAggregator
from tikkle.sync.decision import Decision
from tikkle.sync.mapping import IdentityMap, MappingKind
from tikkle.tickspot import TickspotAPI, TickspotEntry
from tikkle.toggl import TogglAPI
from tikkle.utils.dates import day_bounds

logger = logging.getLogger(__name__)

# Hours are compared as floats coming from JSON
HOURS_TOLERANCE = 1e-6


def find_existing(candidate: Candidate, existing: list[TickspotEntry]) -> TickspotEntry | None:
    """Find the Tickspot entry a candidate corresponds to.

    An entry matches on day, task and notes (line endings normalized).
    """
    for entry in existing:
        if (
            entry.day == candidate.date[:10]
            and entry.task_id == candidate.task_id
            and entry.normalized_notes == candidate.notes
        ):
            return entry
    return None


def decide(candidate: Candidate, existing: TickspotEntry | None) -> Decision:
    """Choose between creating, updating or leaving a Tickspot entry.

    Hours differing by no more than HOURS_TOLERANCE count as equal, so a
    value that only went through a float round trip (2.5 vs 2.50) is not
    rewritten.
    """
    if existing is None:
        return Decision.CREATE
    if not math.isclose(existing.hours, candidate.hours, rel_tol=0, abs_tol=HOURS_TOLERANCE):
        return Decision.UPDATE
    return Decision.SKIP


@dataclass
class SyncDecision:
    """The decision taken for one aggregated entry."""

    decision: Decision
    entry: AggregatedEntry
    existing: TickspotEntry | None = None

    @property
    def candidate(self) -> Candidate:
        return self.entry.candidate


class SyncResult:
    """Results from a sync operation."""

    def __init__(self) -> None:
        """Initialize sync result."""
        self.entries_created = 0
        self.entries_updated = 0
        self.entries_skipped = 0
        self.hours_per_day: dict[str, float] = {}
        self.total_hours = 0.0
        self.decisions: list[SyncDecision] = []

    def add(self, decision: SyncDecision) -> None:
        """Record a decision and add its hours to the totals."""
        if decision.decision is Decision.CREATE:
            self.entries_created += 1
        elif decision.decision is Decision.UPDATE:
            self.entries_updated += 1
        else:
            self.entries_skipped += 1

        candidate = decision.candidate
        self.hours_per_day[candidate.date] = self.hours_per_day.get(candidate.date, 0.0) + candidate.hours
        self.total_hours += candidate.hours
        self.decisions.append(decision)

    @property
    def changes(self) -> int:
        return self.entries_created + self.entries_updated

    def __str__(self) -> str:
        """String representation of results."""
        return (
            f"Created: {self.entries_created}, "
            f"Updated: {self.entries_updated}, "
            f"Skipped: {self.entries_skipped}, "
            f"Hours: {self.total_hours:.2f}"
        )


class SyncEngine:
    """Aggregates Toggl entries and creates or updates Tickspot entries."""

    def __init__(
        self,
        tickspot: TickspotAPI,
        toggl: TogglAPI,
        allowed_clients: list[AllowedClient],
        settings: SyncSettings,
        on_decision: Callable[[SyncDecision], None] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize sync engine.

        Args:
            tickspot: Tickspot API client.
            toggl: Toggl API client.
            allowed_clients: The allow-list.
            settings: Rounding and grouping settings.
            on_decision: Called with each decision right after it is applied.
            tz: Timezone deciding which day an entry belongs to. Defaults to
                the local timezone.
        """
        self.tickspot = tickspot
        self.toggl = toggl
        self.allowed_clients = allowed_clients
        self.aggregator = TimeEntryAggregator(settings, tz=tz)
        self.on_decision = on_decision

    def sync(
        self,
        mapping: IdentityMap | None,
        start: date,
        end: date,
        dry_run: bool = False,
    ) -> SyncResult:
        """Synchronize Toggl time between two days (inclusive) into Tickspot.

        Args:
            mapping: Mapping produced by setup.
            start: First day.
            end: Last day.
            dry_run: If True, only report decisions without writing to Tickspot.

        Returns:
            Sync results.

        Raises:
            ConfigurationError: If the mapping or the allow-list is missing.
            InvalidDateRangeError: If start is after end.
            httpx.HTTPError: If any API request fails. Entries handled before
                the failure stay written.
        """
        if mapping is None or mapping.is_empty():
            raise ConfigurationError("Mapping missing. Run `tikkle setup` to generate the mapping.")
        if not self.allowed_clients:
            raise ConfigurationError("No Tickspot clients selected. Run `tikkle init` first.")
        if start > end:
            raise InvalidDateRangeError(f"Range {start}..{end} ends before it starts")

        logger.info(f"Syncing Toggl entries from {start} to {end}")

        index = self._build_index(mapping)
        range_start, range_end = day_bounds(start, end)
        raw_entries = self.toggl.list_time_entries(range_start, range_end)
        aggregated = self.aggregator.aggregate(raw_entries, index)

        # Entries stopping after midnight on the last day are dated the day after
        last_day = max([end, *(date.fromisoformat(e.candidate.date[:10]) for e in aggregated)])
        existing = self.tickspot.list_entries(start, last_day)
        logger.info(f"Found {len(raw_entries)} Toggl entries and {len(existing)} Tickspot entries")

        result = SyncResult()
        for entry in aggregated:
            match = find_existing(entry.candidate, existing)
            decision = SyncDecision(decide(entry.candidate, match), entry, match)
            if not dry_run:
                self._apply(decision)
            logger.info(
                f"{'[DRY RUN] ' if dry_run else ''}{decision.decision.value}: "
                f"{entry.candidate.date} {entry.client_name} / {entry.project_name} / "
                f"{entry.task_name} {entry.candidate.hours:.2f}h"
            )
            result.add(decision)
            if self.on_decision:
                self.on_decision(decision)

        logger.info(f"Sync complete: {result}")
        return result

    def _build_index(self, mapping: IdentityMap) -> HierarchyIndex:
        clients = []
        projects = []
        for allowed in self.allowed_clients:
            clients.append(self.tickspot.get_client(allowed.client_id))
            projects.extend(self.tickspot.get_project(project_id) for project_id in allowed.project_ids)

        tasks = []
        for project in projects:
            tasks.extend(self.tickspot.get_project_tasks(project.id))

        mapped_clients = mapping.targets(MappingKind.CLIENTS)
        mapped_projects = mapping.targets(MappingKind.TASKS)
        toggl_clients = [c for c in self.toggl.list_clients() if c.id in mapped_clients]
        toggl_projects = []
        for toggl_client in toggl_clients:
            toggl_projects.extend(
                p for p in self.toggl.list_client_projects(toggl_client.id) if p.id in mapped_projects
            )

        return HierarchyIndex(mapping, toggl_clients, toggl_projects, clients, projects, tasks)

    def _apply(self, decision: SyncDecision) -> None:
        payload = decision.candidate.to_payload()
        try:
            if decision.decision is Decision.CREATE:
                self.tickspot.create_entry(payload)
            elif decision.decision is Decision.UPDATE:
                self.tickspot.update_entry(decision.existing.id, payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to {decision.decision.value} Tickspot entry {payload}: {e}")
            raise
