"""Pydantic models for the tikkle settings record."""

from pydantic import BaseModel, ConfigDict, Field


class AllowedClient(BaseModel):
    """A Tickspot client and the projects of it that tikkle may touch."""

    client_id: int
    project_ids: list[int] = Field(default_factory=list)


class TickspotSettings(BaseModel):
    """Tickspot account settings."""

    subscription_id: int
    username: str
    clients: list[AllowedClient] = Field(default_factory=list)


class TogglSettings(BaseModel):
    """Toggl account settings."""

    workspace_id: int


class SyncSettings(BaseModel):
    """Aggregation settings for the sync command.

    Attributes:
        rounding: Rounding unit in seconds.
        round_up_by: Fraction of the unit at or above which a remainder is
            rounded up instead of down.
        grouping: Merge entries of one project and day regardless of their
            descriptions.
    """

    model_config = ConfigDict(validate_assignment=True)

    rounding: int = Field(default=900, gt=0)
    round_up_by: float = Field(default=0.33, ge=0, le=1)
    grouping: bool = False


class AppConfig(BaseModel):
    """Contents of config.yaml."""

    tickspot: TickspotSettings | None = None
    toggl: TogglSettings | None = None
    settings: SyncSettings = Field(default_factory=SyncSettings)
