"""Pydantic models for Tickspot API responses."""

from pydantic import BaseModel, ConfigDict


class TickspotRole(BaseModel):
    """Tickspot role (subscription access) model."""

    model_config = ConfigDict(populate_by_name=True)

    subscription_id: int
    company: str = ""
    api_token: str


class TickspotClient(BaseModel):
    """Tickspot client model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    archive: bool = False


class TickspotProject(BaseModel):
    """Tickspot project model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    client_id: int
    date_closed: str | None = None

    @property
    def closed(self) -> bool:
        """Whether the project has been closed."""
        return self.date_closed is not None


class TickspotTask(BaseModel):
    """Tickspot task model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    project_id: int
    date_closed: str | None = None

    @property
    def closed(self) -> bool:
        """Whether the task has been closed."""
        return self.date_closed is not None


class TickspotEntry(BaseModel):
    """Tickspot time entry model."""

    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    date: str
    hours: float
    notes: str | None = None
    task_id: int

    @property
    def day(self) -> str:
        """Entry date as YYYY-MM-DD."""
        return self.date[:10]

    @property
    def normalized_notes(self) -> str:
        """Notes with CRLF line endings replaced by LF."""
        return (self.notes or "").replace("\r\n", "\n")
