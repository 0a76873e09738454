"""Unit tests for the profile command."""

from pathlib import Path
from unittest.mock import patch

import pytest
from psmodfix.cli.main import app
from psmodfix.core.profile import MARKER, ProfileError
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def profile(tmp_path: Path) -> Path:
    """Profile location that does not exist yet."""
    return tmp_path / "profile.ps1"


class TestProfileCommand:
    """Tests for profile install, remove and show."""

    def test_install_then_show(self, profile: Path) -> None:
        """Installing writes the marked block and show reports it."""
        result = runner.invoke(app, ["profile", "install", "--path", str(profile)])

        assert result.exit_code == 0
        assert "Status check added" in result.output
        assert MARKER in profile.read_text(encoding="utf-8")

        result = runner.invoke(app, ["profile", "show", "-p", str(profile)])

        assert result.exit_code == 0
        assert "Status check: installed" in result.output

    def test_install_twice(self, profile: Path) -> None:
        """A second install leaves the profile unchanged."""
        runner.invoke(app, ["profile", "install", "-p", str(profile)])
        before = profile.read_text(encoding="utf-8")

        result = runner.invoke(app, ["profile", "install", "-p", str(profile)])

        assert result.exit_code == 0
        assert "already present" in result.output
        assert profile.read_text(encoding="utf-8") == before

    def test_remove(self, profile: Path) -> None:
        """Remove strips every marked line."""
        runner.invoke(app, ["profile", "install", "-p", str(profile)])

        result = runner.invoke(app, ["profile", "remove", "-p", str(profile)])

        assert result.exit_code == 0
        assert "Removed" in result.output
        assert MARKER not in profile.read_text(encoding="utf-8")

    def test_remove_when_absent(self, profile: Path) -> None:
        """Nothing to remove is not an error."""
        result = runner.invoke(app, ["profile", "remove", "-p", str(profile)])

        assert result.exit_code == 0
        assert "No status check found" in result.output

    def test_show_not_installed(self, profile: Path) -> None:
        """show on a missing profile reports the check as absent."""
        result = runner.invoke(app, ["profile", "show", "-p", str(profile)])

        assert result.exit_code == 0
        assert "not installed" in result.output

    def test_default_path(self, profile: Path) -> None:
        """Without --path the user's PowerShell profile is used."""
        with patch("psmodfix.cli.commands.profile.get_profile_path", return_value=profile):
            result = runner.invoke(app, ["profile", "install"])

        assert result.exit_code == 0
        assert profile.exists()

    def test_profile_error_exits_nonzero(self, profile: Path) -> None:
        """Write failures are reported with exit code 1."""
        with patch(
            "psmodfix.cli.commands.profile.install_status_block",
            side_effect=ProfileError("Cannot write profile"),
        ):
            result = runner.invoke(app, ["profile", "install", "-p", str(profile)])

        assert result.exit_code == 1
        assert "Cannot write profile" in result.output

    def test_no_args_shows_help(self) -> None:
        """The profile group lists its commands."""
        result = runner.invoke(app, ["profile"])

        assert "install" in result.output
        assert "remove" in result.output
