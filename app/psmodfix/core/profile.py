"""PowerShell profile integration.

Adds or removes a status check in the user's PowerShell profile. Every
inserted line carries :data:`MARKER`, so insertion is idempotent and
removal only touches our own lines.
"""

import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile

from psmodfix.core.paths import get_profile_path

logger = logging.getLogger(__name__)

MARKER = "# psmodfix:status-check"

STATUS_BLOCK: tuple[str, ...] = (
    f"{MARKER} (added by 'psmodfix profile install')",
    "if (Get-Command psmodfix -ErrorAction SilentlyContinue) "
    f"{{ psmodfix status --no-prompt }} {MARKER}",
)


class ProfileError(Exception):
    """Raised when the profile file cannot be read or written."""


def has_status_block(path: Path | None = None) -> bool:
    """Check if the profile already contains the status check."""
    profile = path or get_profile_path()
    try:
        return MARKER in profile.read_text(encoding="utf-8")
    except FileNotFoundError:
        return False
    except OSError as e:
        raise ProfileError(f"Cannot read profile {profile}: {e}") from e


def install_status_block(path: Path | None = None) -> bool:
    """Append the status check to the profile.

    Args:
        path: Profile file. If None, uses the current user's profile.

    Returns:
        True if the block was added, False if it was already present.

    Raises:
        ProfileError: If the profile cannot be read or written.
    """
    profile = path or get_profile_path()
    if has_status_block(profile):
        logger.debug("Status check already present in %s", profile)
        return False

    try:
        existing = profile.read_text(encoding="utf-8")
    except FileNotFoundError:
        existing = ""
    except OSError as e:
        raise ProfileError(f"Cannot read profile {profile}: {e}") from e

    if existing and not existing.endswith("\n"):
        existing += "\n"
    _write_atomic(profile, existing + "\n".join(STATUS_BLOCK) + "\n")
    logger.info("Added status check to %s", profile)
    return True


def remove_status_block(path: Path | None = None) -> int:
    """Remove every marked line from the profile.

    Args:
        path: Profile file. If None, uses the current user's profile.

    Returns:
        Number of lines removed (0 if the profile doesn't exist).

    Raises:
        ProfileError: If the profile cannot be read or written.
    """
    profile = path or get_profile_path()
    try:
        lines = profile.read_text(encoding="utf-8").splitlines(keepends=True)
    except FileNotFoundError:
        return 0
    except OSError as e:
        raise ProfileError(f"Cannot read profile {profile}: {e}") from e

    kept = [line for line in lines if MARKER not in line]
    removed = len(lines) - len(kept)
    if removed:
        _write_atomic(profile, "".join(kept))
        logger.info("Removed %d line(s) from %s", removed, profile)
    return removed


def _write_atomic(path: Path, content: str) -> None:
    """Write a text file through a temporary file and os.replace()."""
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(content)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ProfileError(f"Cannot write profile {path}: {e}") from e
