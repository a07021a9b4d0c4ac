"""Tickspot API integration."""

from tikkle.tickspot.client import TickspotAPI
from tikkle.tickspot.models import (
    TickspotClient,
    TickspotEntry,
    TickspotProject,
    TickspotRole,
    TickspotTask,
)

__all__ = [
    "TickspotAPI",
    "TickspotClient",
    "TickspotEntry",
    "TickspotProject",
    "TickspotRole",
    "TickspotTask",
]
