"""Path management for psmodfix.

This module provides standardized paths following the XDG Base Directory
Specification for configuration and state storage, plus the PowerShell
module roots and profile location the repair workflow operates on.

XDG defaults:
- Config: ~/.config/psmodfix/
- State: ~/.local/state/psmodfix/
"""

import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# Application identifier for directory naming
APP_NAME = "psmodfix"

# Environment variable holding the PowerShell module search path
MODULE_PATH_ENV = "PSModulePath"

# Built-in Windows PowerShell 5.1 modules; never swept
_LEGACY_EDITION_MARKER = "system32/windowspowershell/v1.0"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/psmodfix/ (or XDG_CONFIG_HOME/psmodfix/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    Returns:
        Path to ~/.local/state/psmodfix/ (or XDG_STATE_HOME/psmodfix/).
    """
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the configuration file path.

    Returns:
        Path to ~/.config/psmodfix/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_history_path() -> Path:
    """Get the run history file path.

    Returns:
        Path to ~/.local/state/psmodfix/history.jsonl.
    """
    return get_state_dir() / "history.jsonl"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_config_dir() -> Path:
    """Create the configuration directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_config_dir(), "config")


def ensure_state_dir() -> Path:
    """Create the state directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_state_dir(), "state")


def is_windows() -> bool:
    """Check if running on Windows."""
    return sys.platform == "win32"


def _documents_dir() -> Path:
    return Path.home() / "Documents"


def get_profile_path() -> Path:
    """Get the PowerShell 7 profile for the current user, all hosts.

    Returns:
        ~/Documents/PowerShell/profile.ps1 on Windows,
        ~/.config/powershell/profile.ps1 (or XDG_CONFIG_HOME) elsewhere.
    """
    if is_windows():
        return _documents_dir() / "PowerShell" / "profile.ps1"
    base = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(base) if base else Path.home() / ".config"
    return config_home / "powershell" / "profile.ps1"


def well_known_module_roots() -> list[Path]:
    """Fixed list of module roots for the current platform.

    Returns:
        Module roots for PowerShell 7 and Windows PowerShell, system-wide
        and per-user.
    """
    if is_windows():
        program_files = Path(os.environ.get("ProgramFiles", r"C:\Program Files"))
        documents = _documents_dir()
        return [
            program_files / "PowerShell" / "Modules",
            program_files / "WindowsPowerShell" / "Modules",
            documents / "PowerShell" / "Modules",
            documents / "WindowsPowerShell" / "Modules",
        ]
    return [
        Path("/usr/local/share/powershell/Modules"),
        Path.home() / ".local" / "share" / "powershell" / "Modules",
    ]


def is_legacy_edition_path(path: Path | str) -> bool:
    """Check if a path lies in the built-in Windows PowerShell 5.1 tree.

    Args:
        path: Path to check.

    Returns:
        True if the path is under System32\\WindowsPowerShell\\v1.0.
    """
    normalized = str(path).replace("\\", "/").lower()
    return _LEGACY_EDITION_MARKER in normalized


def get_module_roots(extra: list[str] | None = None) -> list[Path]:
    """Collect the module roots to sweep.

    Combines the well-known roots, each entry of PSModulePath, and any
    configured extra roots. Duplicates, non-existent directories and the
    legacy edition tree are dropped. Order is preserved.

    Args:
        extra: Additional roots from configuration.

    Returns:
        Existing module root directories.
    """
    candidates: list[Path] = list(well_known_module_roots())

    env_value = os.environ.get(MODULE_PATH_ENV, "")
    candidates.extend(Path(p) for p in env_value.split(os.pathsep) if p.strip())
    candidates.extend(Path(p).expanduser() for p in extra or [])

    roots: list[Path] = []
    seen: set[str] = set()
    for candidate in candidates:
        if is_legacy_edition_path(candidate):
            logger.debug("Skipping legacy edition module root %s", candidate)
            continue
        key = os.path.normcase(os.path.normpath(str(candidate)))
        if key in seen:
            continue
        seen.add(key)
        if not candidate.is_dir():
            continue
        roots.append(candidate)
    return roots
