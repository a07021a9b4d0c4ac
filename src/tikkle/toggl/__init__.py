"""Toggl Track API integration."""

from tikkle.toggl.client import TogglAPI
from tikkle.toggl.models import TogglClient, TogglProject, TogglTimeEntry, TogglWorkspace

__all__ = [
    "TogglAPI",
    "TogglClient",
    "TogglProject",
    "TogglTimeEntry",
    "TogglWorkspace",
]
