"""Configuration management for tikkle."""

from pathlib import Path

from tikkle.errors import ConfigurationError
from tikkle.settings import (
    AllowedClient,
    AppConfig,
    SyncSettings,
    TickspotSettings,
    TogglSettings,
)
from tikkle.sync.mapping import IdentityMap
from tikkle.utils.storage import StorageManager


class Config:
    """Manages application configuration, tokens and the identity mapping."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize configuration.

        Args:
            config_dir: Directory for storing configuration.
        """
        self.storage = StorageManager(config_dir)
        self.data = AppConfig(**self.storage.load_config())

    @property
    def settings(self) -> SyncSettings:
        return self.data.settings

    @property
    def allowed_clients(self) -> list[AllowedClient]:
        """The allow-list, in configured order."""
        if self.data.tickspot is None:
            return []
        return self.data.tickspot.clients

    def save(self) -> None:
        """Write the configuration back to disk."""
        self.storage.save_config(self.data.model_dump(mode="json"))

    def require_tickspot(self) -> tuple[TickspotSettings, str]:
        """Tickspot settings and API token.

        Raises:
            ConfigurationError: If Tickspot is not configured.
        """
        token = self.storage.get_token("tickspot")
        if self.data.tickspot is None or not token:
            raise ConfigurationError("Tickspot is not configured. Run `tikkle init` first.")
        return self.data.tickspot, token

    def require_toggl(self) -> tuple[TogglSettings, str]:
        """Toggl settings and API token.

        Raises:
            ConfigurationError: If Toggl is not configured.
        """
        token = self.storage.get_token("toggl")
        if self.data.toggl is None or not token:
            raise ConfigurationError("Toggl is not configured. Run `tikkle init` first.")
        return self.data.toggl, token

    def require_allowed_clients(self) -> list[AllowedClient]:
        """The allow-list, which must not be empty.

        Raises:
            ConfigurationError: If no clients have been selected.
        """
        if not self.allowed_clients:
            raise ConfigurationError("No Tickspot clients selected. Run `tikkle init` first.")
        return self.allowed_clients

    def has_mapping(self) -> bool:
        """Whether a mapping has been persisted by a previous setup."""
        return self.storage.has_mapping()

    def load_mapping(self) -> IdentityMap | None:
        """The persisted identity mapping, or None before the first setup."""
        if not self.storage.has_mapping():
            return None
        return IdentityMap.from_snapshot(self.storage.load_mapping())

    def require_mapping(self) -> IdentityMap:
        """The persisted identity mapping, which must cover clients and tasks.

        Raises:
            ConfigurationError: If setup has not produced a usable mapping.
        """
        mapping = self.load_mapping()
        if mapping is None or mapping.is_empty():
            raise ConfigurationError("Mapping missing. Run `tikkle setup` to generate the mapping.")
        return mapping

    def save_mapping(self, mapping: IdentityMap) -> None:
        """Replace the persisted mapping in one write."""
        self.storage.save_mapping(mapping.snapshot())

    def delete_mapping(self) -> None:
        self.storage.delete_mapping()
