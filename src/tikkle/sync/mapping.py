"""Identity mapping between Tickspot and Toggl records."""

from enum import Enum
from typing import Any


class MappingKind(str, Enum):
    """Kinds of correspondence kept in an IdentityMap."""

    CLIENTS = "clients"  # Tickspot client -> Toggl client
    TASKS = "tasks"  # Tickspot task -> Toggl project
    PROJECTS = "projects"  # Tickspot project -> Toggl project, informational only


class IdentityMap:
    """Ordered source-to-target ID pairs for each MappingKind."""

    def __init__(self) -> None:
        self._pairs: dict[MappingKind, dict[int, int]] = {kind: {} for kind in MappingKind}

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "IdentityMap":
        """Rebuild a map from the output of snapshot().

        Args:
            data: Dictionary of kind name to list of [source, target] pairs.
                Missing kinds are treated as empty.
        """
        identity_map = cls()
        for kind in MappingKind:
            for source_id, target_id in data.get(kind.value) or []:
                identity_map.record(kind, source_id, target_id)
        return identity_map

    def resolve(self, kind: MappingKind, source_id: int) -> int | None:
        """Look up the target ID for a source ID."""
        return self._pairs[kind].get(int(source_id))

    def record(self, kind: MappingKind, source_id: int, target_id: int) -> None:
        """Store a correspondence, replacing any previous target for the source."""
        self._pairs[kind][int(source_id)] = int(target_id)

    def reverse(self, kind: MappingKind) -> dict[int, int]:
        """Target-to-source lookup for one kind.

        When several sources share a target, the last recorded one wins.
        """
        return {target: source for source, target in self._pairs[kind].items()}

    def targets(self, kind: MappingKind) -> set[int]:
        """All target IDs of one kind."""
        return set(self._pairs[kind].values())

    def snapshot(self) -> dict[str, list[list[int]]]:
        """Serializable copy of all pairs, in insertion order."""
        return {
            kind.value: [[source, target] for source, target in self._pairs[kind].items()]
            for kind in MappingKind
        }

    def is_empty(self) -> bool:
        return not any(self._pairs.values())

    def __len__(self) -> int:
        return sum(len(pairs) for pairs in self._pairs.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IdentityMap):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __repr__(self) -> str:
        counts = ", ".join(f"{kind.value}={len(self._pairs[kind])}" for kind in MappingKind)
        return f"IdentityMap({counts})"
