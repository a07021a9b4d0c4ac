"""Tests for storage manager."""

from pathlib import Path

from tikkle.utils import StorageManager


class TestStorageManager:
    """Test StorageManager functionality."""

    def test_init_creates_directory(self, temp_config_dir: Path) -> None:
        """Test that initialization creates the config directory."""
        config_dir = temp_config_dir / "nested"
        storage = StorageManager(config_dir)

        assert config_dir.exists()
        assert storage.config_file == config_dir / "config.yaml"
        assert storage.cache_dir == config_dir / "cache"

    def test_config_persistence(self, storage_manager: StorageManager) -> None:
        """Test saving and loading the settings record."""
        config = {
            "tickspot": {"subscription_id": 123, "username": "me@example.com", "clients": []},
            "settings": {"rounding": 900, "round_up_by": 0.33, "grouping": False},
        }

        storage_manager.save_config(config)

        assert storage_manager.load_config() == config

    def test_mapping_persistence(self, storage_manager: StorageManager) -> None:
        """Test saving and loading mappings."""
        mapping = {"clients": [[1, 500]], "tasks": [[100, 600]], "projects": [[10, 600]]}

        storage_manager.save_mapping(mapping)

        assert storage_manager.has_mapping()
        assert storage_manager.load_mapping() == mapping

    def test_mapping_is_replaced(self, storage_manager: StorageManager) -> None:
        """Test a save replaces the file and leaves no temporary files."""
        storage_manager.save_mapping({"clients": [[1, 500]]})
        storage_manager.save_mapping({"clients": [[2, 501]]})

        assert storage_manager.load_mapping() == {"clients": [[2, 501]]}
        assert [p.name for p in storage_manager.config_dir.iterdir()] == ["mapping.yaml"]

    def test_delete_mapping(self, storage_manager: StorageManager) -> None:
        """Test deleting the mapping, twice."""
        storage_manager.save_mapping({"clients": [[1, 500]]})

        storage_manager.delete_mapping()
        storage_manager.delete_mapping()

        assert not storage_manager.has_mapping()

    def test_token_persistence(self, storage_manager: StorageManager) -> None:
        """Test saving and loading tokens."""
        tokens = {
            "tickspot": "test_tickspot_token",
            "toggl": "test_toggl_token",
        }

        storage_manager.save_tokens(tokens)
        loaded = storage_manager.load_tokens()

        assert loaded == tokens
        assert storage_manager.tokens_file.stat().st_mode & 0o777 == 0o600

    def test_get_set_token(self, storage_manager: StorageManager) -> None:
        """Test getting and setting individual tokens."""
        storage_manager.set_token("toggl", "my_api_key")
        token = storage_manager.get_token("toggl")

        assert token == "my_api_key"

    def test_get_nonexistent_token(self, storage_manager: StorageManager) -> None:
        """Test getting a token that doesn't exist."""
        token = storage_manager.get_token("nonexistent")
        assert token is None

    def test_empty_defaults(self, storage_manager: StorageManager) -> None:
        """Test that loading non-existent files returns empty dicts."""
        assert storage_manager.load_config() == {}
        assert storage_manager.load_mapping() == {}
        assert storage_manager.load_tokens() == {}
        assert not storage_manager.has_mapping()
