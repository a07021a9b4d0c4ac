"""Reconciliation between Tickspot and Toggl."""

from tikkle.sync.aggregator import AggregatedEntry, Candidate, HierarchyIndex, TimeEntryAggregator
from tikkle.sync.decision import Decision
from tikkle.sync.engine import SyncDecision, SyncEngine, SyncResult
from tikkle.sync.mapping import IdentityMap, MappingKind
from tikkle.sync.mirror import HierarchyMirror, HierarchyPurge, MirrorDecision, MirrorResult

__all__ = [
    "AggregatedEntry",
    "Candidate",
    "Decision",
    "HierarchyIndex",
    "HierarchyMirror",
    "HierarchyPurge",
    "IdentityMap",
    "MappingKind",
    "MirrorDecision",
    "MirrorResult",
    "SyncDecision",
    "SyncEngine",
    "SyncResult",
    "TimeEntryAggregator",
]
