"""Unit tests for the PowerShellGet client.

Tests command construction and output parsing with a patched
run_command, so no PowerShell installation is needed.
"""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest
from packaging.version import Version
from psmodfix.client.base import (
    InstallError,
    PackageManagerError,
    PackageManagerUnavailableError,
    RemoteQueryError,
    RemovalError,
)
from psmodfix.client.powershell import PowerShellGetClient, quote
from psmodfix.models.module import LoadedModuleFile, ModuleSource
from psmodfix.models.selection import InstallScope
from psmodfix.utils.shell import CommandResult


AUTH_DLL = "C:\\Program Files\\PowerShell\\Modules\\Microsoft.Graph.Authentication\\x.dll"


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


def _fail(stderr: str) -> CommandResult:
    return CommandResult(stdout="", stderr=stderr, returncode=1)


def _script(mock_run: MagicMock) -> str:
    """Script text passed to pwsh -Command in the last call."""
    args = mock_run.call_args.args[0]
    assert args[:5] == ["pwsh", "-NoLogo", "-NoProfile", "-NonInteractive", "-Command"]
    return args[5]


class TestQuote:
    """Tests for quote function."""

    def test_plain(self) -> None:
        """Values are wrapped in single quotes."""
        assert quote("Microsoft.Graph*") == "'Microsoft.Graph*'"

    def test_embedded_quote(self) -> None:
        """Embedded single quotes are doubled."""
        assert quote("it's") == "'it''s'"


class TestPowerShellGetClientAvailability:
    """Tests for availability checks."""

    @patch("psmodfix.client.powershell.command_exists", return_value=True)
    def test_is_available(self, mock_exists: MagicMock) -> None:
        """is_available checks for the configured executable."""
        assert PowerShellGetClient(executable="pwsh-preview").is_available() is True
        mock_exists.assert_called_once_with("pwsh-preview")

    @patch("psmodfix.client.powershell.command_exists", return_value=False)
    def test_unavailable_raises(self, _mock_exists: MagicMock) -> None:
        """Primitives raise PackageManagerUnavailableError without pwsh."""
        with pytest.raises(PackageManagerUnavailableError):
            PowerShellGetClient().list_installed("Microsoft.Graph*")


@patch("psmodfix.client.powershell.command_exists", return_value=True)
@patch("psmodfix.client.powershell.run_command")
class TestDiscovery:
    """Tests for list_installed and list_available."""

    def test_list_installed(
        self, mock_run: MagicMock, _mock_exists: MagicMock, mock_installed_json: str
    ) -> None:
        """Registry records are parsed with versions and locations."""
        mock_run.return_value = _ok(mock_installed_json)

        modules = PowerShellGetClient().list_installed("Microsoft.Graph.*")

        assert [(m.name, str(m.version)) for m in modules] == [
            ("Microsoft.Graph.Authentication", "2.25.0"),
            ("Microsoft.Graph.Users", "2.10.0"),
            ("Microsoft.Graph.Users", "2.9.0"),
        ]
        assert all(m.source == ModuleSource.GALLERY for m in modules)
        assert modules[0].location.endswith("2.25.0")
        script = _script(mock_run)
        assert "Get-InstalledModule -Name 'Microsoft.Graph.*' -AllVersions" in script
        assert "ConvertTo-Json" in script

    def test_list_available_single_object(
        self, mock_run: MagicMock, _mock_exists: MagicMock, mock_single_json: str
    ) -> None:
        """A single JSON object is treated as a one-element list."""
        mock_run.return_value = _ok(mock_single_json)

        [module] = PowerShellGetClient().list_available("Microsoft.Graph.Beta*")

        assert module.name == "Microsoft.Graph.Beta.Users"
        assert module.version == Version("2.26.0rc0")
        assert module.source == ModuleSource.PATH_ONLY
        assert "Get-Module -Name 'Microsoft.Graph.Beta*' -ListAvailable" in _script(mock_run)

    def test_empty_output(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """No output means no modules."""
        mock_run.return_value = _ok("")

        assert PowerShellGetClient().list_installed("Microsoft.Entra*") == []

    def test_skips_malformed_records(
        self, mock_run: MagicMock, _mock_exists: MagicMock, mock_malformed_json: str
    ) -> None:
        """Records without a name or a valid version are dropped."""
        mock_run.return_value = _ok(mock_malformed_json)

        modules = PowerShellGetClient().list_available("Microsoft.Entra*")

        assert [(m.name, str(m.version), m.location) for m in modules] == [
            ("Microsoft.Entra", "1.0.5", "")
        ]

    def test_invalid_json(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Non-JSON output raises PackageManagerError."""
        mock_run.return_value = _ok("WARNING: something odd")

        with pytest.raises(PackageManagerError, match="Unexpected PowerShell output"):
            PowerShellGetClient().list_installed("Microsoft.Graph*")

    def test_command_failure(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A failing query raises PackageManagerError with stderr."""
        mock_run.return_value = _fail("PowerShellGet is not loaded")

        with pytest.raises(PackageManagerError, match="PowerShellGet is not loaded"):
            PowerShellGetClient().list_installed("Microsoft.Graph*")

    def test_timeout(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Timeouts become PackageManagerError."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="pwsh", timeout=120)

        with pytest.raises(PackageManagerError, match="timed out"):
            PowerShellGetClient().list_installed("Microsoft.Graph*")

    def test_installed_version_uses_exact_name(
        self, mock_run: MagicMock, _mock_exists: MagicMock, mock_installed_json: str
    ) -> None:
        """installed_version picks the highest version of the exact name."""
        mock_run.side_effect = [_ok(mock_installed_json), _ok("")]

        version = PowerShellGetClient().installed_version("microsoft.graph.users")

        assert version == Version("2.10.0")


@patch("psmodfix.client.powershell.command_exists", return_value=True)
@patch("psmodfix.client.powershell.run_command")
class TestRemoval:
    """Tests for uninstall primitives."""

    def test_uninstall_exact_version(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Uninstall passes the exact version."""
        mock_run.return_value = _ok()

        PowerShellGetClient().uninstall("Microsoft.Graph.Users", Version("2.9.0"))

        script = _script(mock_run)
        assert "-Name 'Microsoft.Graph.Users' -RequiredVersion '2.9.0' -Force" in script
        assert script.count("Uninstall-Module") == 1

    def test_uninstall_failure(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A failed uninstall raises RemovalError."""
        mock_run.return_value = _fail("The module is currently in use")

        with pytest.raises(RemovalError, match="currently in use"):
            PowerShellGetClient().uninstall("Microsoft.Graph.Users", Version("2.9.0"))

    def test_uninstall_all_versions(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """The retry form removes every version."""
        mock_run.return_value = _ok()

        PowerShellGetClient().uninstall_all_versions("Microsoft.Graph.Users")

        assert "-AllVersions -Force" in _script(mock_run)


@patch("psmodfix.client.powershell.command_exists", return_value=True)
@patch("psmodfix.client.powershell.run_command")
class TestFindLoaded:
    """Tests for find_loaded."""

    def test_queries_other_sessions(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Only other pwsh/powershell processes are inspected, filtered by path."""
        mock_run.return_value = _ok()

        assert PowerShellGetClient().find_loaded("Microsoft.Graph") == []

        script = _script(mock_run)
        assert "Get-Process -Name pwsh, powershell" in script
        assert "Where-Object Id -ne $PID" in script
        assert "-like '*Microsoft.Graph*'" in script
        assert "Remove-Module" not in script

    def test_parses_single_record(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A single process record is decoded."""
        mock_run.return_value = _ok(
            json.dumps({"Id": 1234, "Process": "pwsh", "Path": AUTH_DLL})
        )

        loaded = PowerShellGetClient().find_loaded("Microsoft.Graph")

        assert loaded == [LoadedModuleFile(pid=1234, process="pwsh", path=AUTH_DLL)]

    def test_skips_malformed_records(
        self, mock_run: MagicMock, _mock_exists: MagicMock
    ) -> None:
        """Records without a path or a valid process ID are dropped."""
        mock_run.return_value = _ok(
            json.dumps(
                [
                    {"Id": 1234, "Process": "pwsh", "Path": ""},
                    {"Id": None, "Process": "pwsh", "Path": AUTH_DLL},
                    {"Id": "abc", "Process": "pwsh", "Path": AUTH_DLL},
                    {"Id": 77, "Process": "powershell", "Path": AUTH_DLL},
                ]
            )
        )

        loaded = PowerShellGetClient().find_loaded("Microsoft.Graph")

        assert loaded == [LoadedModuleFile(pid=77, process="powershell", path=AUTH_DLL)]

    def test_query_failure(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A failed query raises PackageManagerError."""
        mock_run.return_value = _fail("Access is denied")

        with pytest.raises(PackageManagerError, match="Access is denied"):
            PowerShellGetClient().find_loaded("Microsoft.Graph")


@patch("psmodfix.client.powershell.command_exists", return_value=True)
@patch("psmodfix.client.powershell.run_command")
class TestInstallAndFind:
    """Tests for install and find_latest."""

    def test_install_forced(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Install uses scope, repository, force and overwrite."""
        mock_run.return_value = _ok()

        PowerShellGetClient(repository="Internal", install_timeout=600).install(
            "Microsoft.Graph", InstallScope.ALL_USERS
        )

        script = _script(mock_run)
        assert "Install-Module -Name 'Microsoft.Graph' -Scope AllUsers" in script
        assert "-Repository 'Internal'" in script
        assert script.endswith("-Force -AllowClobber")
        assert mock_run.call_args.kwargs["timeout"] == 600

    def test_install_failure(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A failed install raises InstallError."""
        mock_run.return_value = _fail("Unable to resolve package source")

        with pytest.raises(InstallError, match="Unable to resolve"):
            PowerShellGetClient().install("Microsoft.Graph", InstallScope.CURRENT_USER)

    def test_install_timeout(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """A timed-out install is an InstallError."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="pwsh", timeout=1800)

        with pytest.raises(InstallError):
            PowerShellGetClient().install("Microsoft.Graph", InstallScope.CURRENT_USER)

    def test_find_latest(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """The latest version is parsed from plain output."""
        mock_run.return_value = _ok("2.26.1\n")

        assert PowerShellGetClient().find_latest("Microsoft.Graph") == Version("2.26.1")

    def test_find_latest_no_match(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """An unknown module yields None."""
        mock_run.return_value = _fail("No match was found for the specified search criteria")

        assert PowerShellGetClient().find_latest("Contoso.Missing") is None

    def test_find_latest_offline(self, mock_run: MagicMock, _mock_exists: MagicMock) -> None:
        """Network failures raise RemoteQueryError."""
        mock_run.return_value = _fail("Unable to access the repository")

        with pytest.raises(RemoteQueryError):
            PowerShellGetClient().find_latest("Microsoft.Graph")
