"""Storage for tikkle configuration, identity mapping and API tokens."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_DIR = Path.home() / ".tikkle"


class StorageManager:
    """Manages the files under the tikkle configuration directory."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize storage manager.

        Args:
            config_dir: Directory to store configuration. Defaults to ~/.tikkle/
        """
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.config_file = self.config_dir / "config.yaml"
        self.mapping_file = self.config_dir / "mapping.yaml"
        self.tokens_file = self.config_dir / "tokens.json"
        self.cache_dir = self.config_dir / "cache"

    def load_config(self) -> dict[str, Any]:
        """Load the settings record.

        Returns:
            Configuration dictionary, empty if nothing was saved yet.
        """
        if self.config_file.exists():
            with open(self.config_file) as f:
                return yaml.safe_load(f) or {}
        return {}

    def save_config(self, config: dict[str, Any]) -> None:
        """Save the settings record.

        Args:
            config: Configuration to save.
        """
        self._write_atomic(
            self.config_file,
            yaml.dump(config, default_flow_style=False, sort_keys=False),
        )

    def has_mapping(self) -> bool:
        """Check whether an identity mapping has been persisted."""
        return self.mapping_file.exists()

    def load_mapping(self) -> dict[str, Any]:
        """Load the identity mapping snapshot.

        Returns:
            Mapping snapshot, empty if no mapping exists.
        """
        if self.mapping_file.exists():
            with open(self.mapping_file) as f:
                return yaml.safe_load(f) or {}
        return {}

    def save_mapping(self, mapping: dict[str, Any]) -> None:
        """Replace the identity mapping snapshot.

        The previous file stays intact until the new content is fully written.

        Args:
            mapping: Mapping snapshot to save.
        """
        self._write_atomic(
            self.mapping_file,
            yaml.dump(mapping, default_flow_style=None, sort_keys=False),
        )

    def delete_mapping(self) -> None:
        """Remove the identity mapping file."""
        self.mapping_file.unlink(missing_ok=True)

    def load_tokens(self) -> dict[str, str]:
        """Load stored API tokens.

        Returns:
            Dictionary of service names to tokens.
        """
        if self.tokens_file.exists():
            with open(self.tokens_file) as f:
                return json.load(f)
        return {}

    def save_tokens(self, tokens: dict[str, str]) -> None:
        """Save API tokens.

        Args:
            tokens: Dictionary of service names to tokens.
        """
        self.tokens_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.tokens_file, "w") as f:
            json.dump(tokens, f)
        # User read/write only
        self.tokens_file.chmod(0o600)

    def get_token(self, service: str) -> str | None:
        """Get stored token for a service.

        Args:
            service: Service name ("tickspot" or "toggl").

        Returns:
            Token if available, None otherwise.
        """
        return self.load_tokens().get(service)

    def set_token(self, service: str, token: str) -> None:
        """Save token for a service.

        Args:
            service: Service name.
            token: API token.
        """
        tokens = self.load_tokens()
        tokens[service] = token
        self.save_tokens(tokens)

    def _write_atomic(self, path: Path, content: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
