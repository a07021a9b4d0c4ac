"""Tests for the command-line interface."""

import locale
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import make_entry
from typer.testing import CliRunner

from tikkle import __version__
from tikkle.cli import app, main
from tikkle.config import Config
from tikkle.settings import AllowedClient, TickspotSettings, TogglSettings
from tikkle.sync import IdentityMap, MappingKind

runner = CliRunner()


@pytest.fixture
def configured(temp_config_dir: Path) -> Path:
    """A configuration directory after `tikkle init`."""
    config = Config(temp_config_dir)
    config.data.tickspot = TickspotSettings(
        subscription_id=123,
        username="me@example.com",
        clients=[AllowedClient(client_id=1, project_ids=[10])],
    )
    config.data.toggl = TogglSettings(workspace_id=77)
    config.save()
    config.storage.set_token("tickspot", "tickspot-token")
    config.storage.set_token("toggl", "toggl-token")
    return temp_config_dir


class TestCLI:
    """Test CLI commands."""

    def test_version(self) -> None:
        """Test the version command."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert f"Tikkle v{__version__}" in result.stdout

    def test_sync_rejects_bad_range(self, configured: Path) -> None:
        """Test an invalid range fails before anything else."""
        with patch("tikkle.cli._open_apis") as open_apis:
            result = runner.invoke(app, ["sync", "2024-13-01", "--config-dir", str(configured)])

        assert result.exit_code == 1
        assert "Invalid date" in result.stdout
        open_apis.assert_not_called()

    def test_sync_requires_mapping(self, configured: Path) -> None:
        """Test sync refuses to run before setup."""
        result = runner.invoke(app, ["sync", "today", "--config-dir", str(configured)])

        assert result.exit_code == 1
        assert "tikkle setup" in result.stdout

    def test_setup_requires_init(self, temp_config_dir: Path) -> None:
        """Test setup refuses to run without an allow-list."""
        result = runner.invoke(app, ["setup", "--config-dir", str(temp_config_dir)])

        assert result.exit_code == 1
        assert "tikkle init" in result.stdout

    def test_setup_saves_mapping(self, configured: Path, tickspot, toggl) -> None:
        """Test setup mirrors the hierarchy and persists the mapping."""
        with patch("tikkle.cli._open_apis", return_value=(tickspot, toggl)):
            result = runner.invoke(app, ["setup", "--config-dir", str(configured)])

        assert result.exit_code == 0
        assert "Setup complete" in result.stdout
        mapping = Config(configured).load_mapping()
        assert mapping.resolve(MappingKind.CLIENTS, 1) in toggl.clients
        assert len(toggl.projects) == 2

    def test_sync_creates_entries(self, configured: Path, tickspot, toggl, mirrored: IdentityMap) -> None:
        """Test a sync run prints each decision and the totals."""
        Config(configured).save_mapping(mirrored)
        toggl.time_entries = [make_entry(1, 600, "2024-03-04T12:00:00Z", 9000, "Mockups")]

        with patch("tikkle.cli._open_apis", return_value=(tickspot, toggl)):
            result = runner.invoke(app, ["sync", "2024-03-04", "--config-dir", str(configured)])

        assert result.exit_code == 0
        assert "Acme / Website / Design" in result.stdout
        assert "Created: 1" in result.stdout
        assert len(tickspot.created) == 1

    def test_sync_dry_run(self, configured: Path, tickspot, toggl, mirrored: IdentityMap) -> None:
        """Test dry run leaves Tickspot untouched."""
        Config(configured).save_mapping(mirrored)
        toggl.time_entries = [make_entry(1, 600, "2024-03-04T12:00:00Z", 9000, "Mockups")]

        with patch("tikkle.cli._open_apis", return_value=(tickspot, toggl)):
            result = runner.invoke(
                app, ["sync", "2024-03-04", "--dry-run", "--config-dir", str(configured)]
            )

        assert result.exit_code == 0
        assert "dry run" in result.stdout
        assert tickspot.created == []

    def test_purge(self, configured: Path, tickspot, toggl, mirrored: IdentityMap) -> None:
        """Test purge deletes mirrored records and the mapping."""
        Config(configured).save_mapping(mirrored)

        with patch("tikkle.cli._open_apis", return_value=(tickspot, toggl)):
            result = runner.invoke(app, ["purge", "--yes", "--config-dir", str(configured)])

        assert result.exit_code == 0
        assert toggl.clients == {}
        assert toggl.projects == {}
        assert not Config(configured).has_mapping()

    def test_clear_can_be_declined(self, configured: Path, tickspot, toggl, mirrored: IdentityMap) -> None:
        """Test answering no to the confirmation keeps everything."""
        Config(configured).save_mapping(mirrored)

        with patch("tikkle.cli._open_apis", return_value=(tickspot, toggl)):
            result = runner.invoke(app, ["clear", "--config-dir", str(configured)], input="n\n")

        assert result.exit_code == 0
        assert len(toggl.projects) == 2
        assert Config(configured).has_mapping()

    def test_configure(self, configured: Path) -> None:
        """Test settings are changed and saved."""
        result = runner.invoke(
            app,
            ["configure", "--rounding", "600", "--round-up-by", "0.5", "--grouping", "--config-dir", str(configured)],
        )

        assert result.exit_code == 0
        settings = Config(configured).settings
        assert (settings.rounding, settings.round_up_by, settings.grouping) == (600, 0.5, True)

    def test_configure_rejects_invalid(self, configured: Path) -> None:
        """Test an out of range fraction is refused and not saved."""
        result = runner.invoke(app, ["configure", "--round-up-by", "1.5", "--config-dir", str(configured)])

        assert result.exit_code == 1
        assert Config(configured).settings.round_up_by == 0.33

    def test_mapping_command(self, configured: Path, mirrored: IdentityMap) -> None:
        """Test the mapping table."""
        empty = runner.invoke(app, ["mapping", "--config-dir", str(configured)])
        Config(configured).save_mapping(mirrored)
        shown = runner.invoke(app, ["mapping", "--config-dir", str(configured)])

        assert "No mapping yet" in empty.stdout
        assert "600" in shown.stdout

    def test_cache_clear(self, configured: Path) -> None:
        """Test the cache directory is removed."""
        cache_dir = configured / "cache"
        cache_dir.mkdir()
        (cache_dir / "TICKSPOT_123_GETclients.json").write_text("[]")

        result = runner.invoke(app, ["cache", "clear", "--config-dir", str(configured)])

        assert result.exit_code == 0
        assert not cache_dir.exists()

    def test_main_uses_user_collation(self) -> None:
        """Test the entry point switches sorting to the user's locale before running."""
        with patch("tikkle.cli.locale.setlocale") as setlocale, patch("tikkle.cli.app") as cli_app:
            main()

        setlocale.assert_called_once_with(locale.LC_COLLATE, "")
        cli_app.assert_called_once_with()

    def test_main_tolerates_unsupported_locale(self) -> None:
        """Test an unusable locale does not stop the CLI."""
        with (
            patch("tikkle.cli.locale.setlocale", side_effect=locale.Error("unsupported locale setting")),
            patch("tikkle.cli.app") as cli_app,
        ):
            main()

        cli_app.assert_called_once_with()
