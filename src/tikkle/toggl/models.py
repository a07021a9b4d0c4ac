"""Pydantic models for Toggl Track API responses."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class TogglWorkspace(BaseModel):
    """Toggl workspace model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str


class TogglClient(BaseModel):
    """Toggl client model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    notes: str | None = None


class TogglProject(BaseModel):
    """Toggl project model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    client_id: int | None = Field(default=None, validation_alias=AliasChoices("client_id", "cid"))
    active: bool = True


class TogglTimeEntry(BaseModel):
    """Toggl time entry model.

    A running entry has no stop timestamp and a negative duration.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    project_id: int | None = Field(default=None, validation_alias=AliasChoices("project_id", "pid"))
    start: datetime
    stop: datetime | None = None
    duration: int
    description: str | None = None

    @property
    def is_running(self) -> bool:
        """Whether the timer for this entry is still running."""
        return self.stop is None or self.duration < 0
