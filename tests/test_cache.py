"""Tests for the response cache."""

from pathlib import Path

from tikkle.cache import CacheMode, ResponseCache


class TestResponseCache:
    """Test ResponseCache functionality."""

    def test_memory_mode(self, temp_config_dir: Path) -> None:
        """Test memory entries never touch the disk."""
        cache = ResponseCache(temp_config_dir / "cache")
        cache.set("TOGGL_GET/clients", [1, 2], CacheMode.MEMORY)

        assert cache.get("TOGGL_GET/clients", CacheMode.MEMORY) == [1, 2]
        assert not (temp_config_dir / "cache").exists()

    def test_persist_survives_new_instance(self, temp_config_dir: Path) -> None:
        """Test persisted entries are read back from disk."""
        ResponseCache(temp_config_dir / "cache").set("TICKSPOT_1_GET/clients/1.json", {"id": 1})

        cache = ResponseCache(temp_config_dir / "cache")

        assert cache.has("TICKSPOT_1_GET/clients/1.json")
        assert cache.get("TICKSPOT_1_GET/clients/1.json") == {"id": 1}

    def test_disk_only_skips_memory(self, temp_config_dir: Path) -> None:
        """Test disk-only entries are invisible to memory lookups."""
        cache = ResponseCache(temp_config_dir / "cache")
        cache.set("key", "value", CacheMode.DISK_ONLY)

        assert not cache.has("key", CacheMode.MEMORY)
        assert cache.get("key", CacheMode.DISK_ONLY) == "value"

    def test_none_mode_caches_nothing(self) -> None:
        """Test the none mode is a no-op."""
        cache = ResponseCache()
        cache.set("key", "value", CacheMode.NONE)

        assert not cache.has("key", CacheMode.NONE)
        assert cache.get("key", CacheMode.MEMORY) is None

    def test_discard_prefix(self, temp_config_dir: Path) -> None:
        """Test discard drops only matching keys, in memory and on disk."""
        cache = ResponseCache(temp_config_dir / "cache")
        cache.set("TOGGL_GET/clients", [])
        cache.set("TICKSPOT_1_GET/clients.json", [])

        cache.discard("TOGGL_")

        assert not cache.has("TOGGL_GET/clients")
        assert cache.has("TICKSPOT_1_GET/clients.json")

    def test_clear(self, temp_config_dir: Path) -> None:
        """Test clear removes everything, including the directory."""
        cache = ResponseCache(temp_config_dir / "cache")
        cache.set("key", "value")

        cache.clear()

        assert not cache.has("key")
        assert not (temp_config_dir / "cache").exists()
