"""Folder sweep and verification over PowerShell module roots.

After the convergence loop, module folders matching the selection may
still hold files the package manager lost track of. The sweeper deletes
their contents item by item, so each failure is attributable to one
path, and the verification pass reports whatever is left.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from psmodfix.core.paths import get_module_roots
from psmodfix.models.report import SweepResult
from psmodfix.models.selection import PackageSelection

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeletionResult:
    """Result of deleting a single filesystem path.

    Attributes:
        path: Path that was operated on.
        success: Whether the path is gone.
        error: Error message if the deletion failed, None otherwise.
    """

    path: str
    success: bool
    error: str | None = None


def delete_path(path: Path | str) -> DeletionResult:
    """Delete a file, symlink or directory tree.

    Directories (but not symlinks to directories) are removed with
    shutil.rmtree; files and symlinks with Path.unlink.

    Args:
        path: Path to delete.

    Returns:
        DeletionResult indicating success or failure.
    """
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
            return DeletionResult(path=str(target), success=True)

        if target.exists() or target.is_symlink():
            target.unlink()
            return DeletionResult(path=str(target), success=True)

        return DeletionResult(
            path=str(target),
            success=False,
            error=f"Path does not exist: {target}",
        )
    except OSError as e:
        return DeletionResult(path=str(target), success=False, error=str(e))


def leaf_entries(folder: Path) -> list[str]:
    """List files, symlinks and empty directories below a folder.

    Args:
        folder: Directory to inspect.

    Returns:
        Sorted full paths of leaf entries (the folder itself excluded).
    """
    leaves: list[str] = []
    for dirpath, dirnames, filenames in os.walk(folder):
        leaves.extend(os.path.join(dirpath, name) for name in filenames)
        for name in dirnames:
            full = os.path.join(dirpath, name)
            if os.path.islink(full):
                leaves.append(full)
        if not dirnames and not filenames and os.path.normpath(dirpath) != os.path.normpath(
            folder
        ):
            leaves.append(dirpath)
    return sorted(leaves)


class FolderSweeper:
    """Sweeps module roots for folders belonging to a selection.

    Args:
        roots: Explicit module roots. If None, roots are discovered with
            :func:`get_module_roots` on first use.
        extra_roots: Additional roots passed to root discovery.
    """

    def __init__(
        self,
        roots: list[Path] | None = None,
        *,
        extra_roots: list[str] | None = None,
    ) -> None:
        self._roots = roots
        self._extra_roots = extra_roots or []

    @property
    def roots(self) -> list[Path]:
        """Module roots scanned by this sweeper."""
        if self._roots is None:
            self._roots = get_module_roots(self._extra_roots)
            logger.debug("Module roots: %s", ", ".join(str(r) for r in self._roots))
        return self._roots

    def matching_dirs(self, selection: PackageSelection) -> list[Path]:
        """Find module folders whose name matches the selection.

        Non-existent roots are skipped; unreadable roots are logged.

        Args:
            selection: Families to match.

        Returns:
            Matching directories, in root order then name order.
        """
        matches: list[Path] = []
        for root in self.roots:
            if not root.is_dir():
                continue
            try:
                children = sorted(root.iterdir())
            except OSError as e:
                logger.warning("Cannot read module root %s: %s", root, e)
                continue
            for child in children:
                if child.is_dir() and not child.is_symlink() and selection.matches(child.name):
                    matches.append(child)
        return matches

    def sweep(self, selection: PackageSelection) -> SweepResult:
        """Delete the contents of every matching module folder.

        Items are deleted one at a time. Each emptied folder is removed
        afterwards.

        Args:
            selection: Families whose folders are swept.

        Returns:
            SweepResult with removed/failed counts and per-path errors.
        """
        removed = 0
        failed = 0
        errors: dict[str, str] = {}

        for folder in self.matching_dirs(selection):
            try:
                items = sorted(folder.iterdir())
            except OSError as e:
                failed += 1
                errors[str(folder)] = str(e)
                logger.warning("Cannot list %s: %s", folder, e)
                continue

            for item in items:
                result = delete_path(item)
                if result.success:
                    removed += 1
                else:
                    failed += 1
                    errors[result.path] = result.error or "Unknown error"
                    logger.warning("Could not delete %s: %s", result.path, result.error)

            try:
                folder.rmdir()
            except OSError as e:
                logger.debug("Leaving %s in place: %s", folder, e)

        logger.info("Folder sweep removed %d item(s), %d failed", removed, failed)
        return SweepResult(removed=removed, failed=failed, errors=errors)

    def verify(self, selection: PackageSelection) -> list[str]:
        """Re-scan the roots and list everything left behind.

        Args:
            selection: Families to verify.

        Returns:
            Full paths of residual entries; empty when clean.
        """
        residual: list[str] = []
        for folder in self.matching_dirs(selection):
            residual.extend(leaf_entries(folder))
        return residual
