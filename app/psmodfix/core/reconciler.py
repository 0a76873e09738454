"""Cleanup engine for module families.

Removes every module of a selection by running discovery and removal
passes until both discovery sources report nothing, then sweeps the
module roots and verifies that nothing is left on disk.
"""

from __future__ import annotations

import gc
import logging
import re
import time
from collections.abc import Callable, Iterable
from pathlib import Path

from psmodfix.client.base import (
    PackageManagerClient,
    PackageManagerError,
    PackageManagerUnavailableError,
)
from psmodfix.core.progress import StatusChannel
from psmodfix.core.sweep import FolderSweeper, delete_path
from psmodfix.models.module import InstalledModule, ModuleSource
from psmodfix.models.report import (
    LockHolder,
    ReconciliationOutcome,
    ReconciliationPass,
    ReconciliationReport,
)
from psmodfix.models.selection import PackageSelection

logger = logging.getLogger(__name__)

# Hard cap on discovery/removal passes. Locked files can keep a module
# visible forever, so the loop must stop here.
MAX_ITERATIONS = 10


def dedupe(modules: Iterable[InstalledModule]) -> list[InstalledModule]:
    """Collapse identical records returned by overlapping patterns.

    Records are identical when source, name (case-insensitive) and
    version match. Different versions of one module are all kept.

    Args:
        modules: Records in discovery order.

    Returns:
        Unique records, first occurrence wins.
    """
    seen: set[tuple[ModuleSource, str, object]] = set()
    unique: list[InstalledModule] = []
    for module in modules:
        if module.key in seen:
            continue
        seen.add(module.key)
        unique.append(module)
    return unique


def find_orphans(
    gallery: Iterable[InstalledModule],
    path_only: Iterable[InstalledModule],
) -> list[InstalledModule]:
    """Find search-path modules the registry does not know about.

    Args:
        gallery: Registry-tracked records of the current pass.
        path_only: Search-path records of the current pass.

    Returns:
        Search-path records whose name has no registry record.
    """
    known = {module.name.lower() for module in gallery}
    return [module for module in path_only if module.name.lower() not in known]


def owning_module(path: str, selection: PackageSelection) -> str | None:
    """Name of the selected module whose folder contains a file.

    Only directory components are considered, so a file merely named
    after a module elsewhere on disk does not count.

    Args:
        path: Windows or POSIX file path.
        selection: Families to match against.

    Returns:
        First matching directory name, or None.
    """
    for part in re.split(r"[\\/]", path)[:-1]:
        if part and selection.matches(part):
            return part
    return None


class Reconciler:
    """Drives cleanup passes for a selection until it converges.

    Args:
        client: Package manager used for discovery and removal.
        sweeper: Folder sweeper for the post-loop sweep and verification.
        reclaim_delay: Seconds to wait between passes so removed modules
            release their file handles.
        sleep: Sleep function, replaceable in tests.
        channel: Channel receiving progress messages.
    """

    def __init__(
        self,
        client: PackageManagerClient,
        sweeper: FolderSweeper,
        *,
        reclaim_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        channel: StatusChannel | None = None,
    ) -> None:
        self._client = client
        self._sweeper = sweeper
        self._reclaim_delay = reclaim_delay
        self._sleep = sleep
        self._channel = channel or StatusChannel()

    def reconcile(self, selection: PackageSelection) -> ReconciliationReport:
        """Remove every module of the selection.

        Runs at most :data:`MAX_ITERATIONS` passes. The folder sweep and
        the verification pass run only after the last pass has finished.

        Args:
            selection: Families to remove.

        Returns:
            ReconciliationReport describing what was removed and what remains.

        Raises:
            PackageManagerUnavailableError: If the package manager cannot be used.
        """
        self._channel.publish("Checking PowerShell sessions for loaded modules")
        lock_holders = self.find_lock_holders(selection)

        passes: list[ReconciliationPass] = []
        total_uninstalled = 0
        total_orphans = 0
        last_failures: list[str] = []
        outcome = ReconciliationOutcome.MAX_ITERATIONS_EXCEEDED

        for iteration in range(1, MAX_ITERATIONS + 1):
            self._channel.publish(f"Cleanup pass {iteration}/{MAX_ITERATIONS}")
            gallery, path_only, complete = self.discover(selection)

            if complete and not gallery and not path_only:
                passes.append(ReconciliationPass(iteration, 0, 0))
                outcome = ReconciliationOutcome.CONVERGED
                logger.info("Converged after %d pass(es)", iteration)
                break

            failures: list[str] = []
            uninstalled = self._uninstall(gallery, failures)
            orphans_removed = self._delete_orphans(find_orphans(gallery, path_only), failures)
            total_uninstalled += uninstalled
            total_orphans += orphans_removed
            last_failures = failures

            passes.append(
                ReconciliationPass(
                    iteration=iteration,
                    installed_found=len(gallery),
                    path_only_found=len(path_only),
                    orphans_removed=orphans_removed,
                    failures_pending=len(failures),
                )
            )
            logger.info(
                "Pass %d: %d registered, %d on path, %d uninstalled, %d orphan(s) removed",
                iteration,
                len(gallery),
                len(path_only),
                uninstalled,
                orphans_removed,
            )

            if iteration < MAX_ITERATIONS:
                self._reclaim()
        else:
            logger.warning("Cleanup did not converge within %d passes", MAX_ITERATIONS)

        pending: tuple[str, ...] = ()
        if outcome == ReconciliationOutcome.MAX_ITERATIONS_EXCEEDED:
            pending = tuple(dict.fromkeys(last_failures))

        self._channel.publish("Sweeping module folders")
        sweep = self._sweeper.sweep(selection)

        self._channel.publish("Verifying module folders")
        residual = self._sweeper.verify(selection)

        return ReconciliationReport(
            outcome=outcome,
            iterations_run=len(passes),
            total_uninstalled=total_uninstalled,
            total_orphans_removed=total_orphans,
            residual_items=tuple(residual),
            pending_manual_cleanup=pending,
            swept_removed=sweep.removed,
            swept_failed=sweep.failed,
            passes=tuple(passes),
            lock_holders=lock_holders,
        )

    def find_lock_holders(self, selection: PackageSelection) -> tuple[LockHolder, ...]:
        """Find other PowerShell sessions with modules of the selection loaded.

        Loaded assemblies keep their files locked, so uninstalls and folder
        deletes fail until those sessions are closed. Each holder is logged
        as a warning; a failed query is logged and ignored.

        Args:
            selection: Families about to be removed.

        Returns:
            Holders ordered by process ID.

        Raises:
            PackageManagerUnavailableError: If the package manager cannot be used.
        """
        modules_by_pid: dict[int, set[str]] = {}
        names: dict[int, str] = {}
        for pattern in selection.patterns:
            try:
                loaded = self._client.find_loaded(pattern)
            except PackageManagerUnavailableError:
                raise
            except PackageManagerError as e:
                logger.warning("Could not check loaded modules for %s: %s", pattern, e)
                continue
            for item in loaded:
                module = owning_module(item.path, selection)
                if module is None:
                    continue
                modules_by_pid.setdefault(item.pid, set()).add(module)
                names[item.pid] = item.process

        holders = tuple(
            LockHolder(pid=pid, process=names[pid], modules=tuple(sorted(modules)))
            for pid, modules in sorted(modules_by_pid.items())
        )
        for holder in holders:
            logger.warning("%s has %s loaded", holder.label, ", ".join(holder.modules))
        return holders

    def discover(
        self,
        selection: PackageSelection,
    ) -> tuple[list[InstalledModule], list[InstalledModule], bool]:
        """Query both discovery sources for every pattern of the selection.

        Args:
            selection: Families to discover.

        Returns:
            Tuple of (registry records, search-path records, complete).
            ``complete`` is False when any query failed, in which case an
            empty result must not be taken as convergence.

        Raises:
            PackageManagerUnavailableError: If the package manager cannot be used.
        """
        gallery: list[InstalledModule] = []
        path_only: list[InstalledModule] = []
        complete = True

        for pattern in selection.patterns:
            for query, bucket in (
                (self._client.list_installed, gallery),
                (self._client.list_available, path_only),
            ):
                try:
                    found = query(pattern)
                except PackageManagerUnavailableError:
                    raise
                except PackageManagerError as e:
                    logger.warning("Discovery failed for %s: %s", pattern, e)
                    complete = False
                    continue
                bucket.extend(m for m in found if selection.matches(m.name))

        return dedupe(gallery), dedupe(path_only), complete

    def _uninstall(self, gallery: list[InstalledModule], failures: list[str]) -> int:
        """Uninstall registry records, retrying once with all versions.

        Names that fail twice are appended to ``failures``. Records of a
        name already removed by an all-versions uninstall in this pass are
        skipped.

        Returns:
            Number of records uninstalled.
        """
        uninstalled = 0
        removed_all: set[str] = set()
        for module in gallery:
            if module.name.lower() in removed_all:
                logger.debug("Skipping %s %s: all versions removed", module.name, module.version)
                continue
            self._channel.publish(f"Uninstalling {module.name} {module.version}")
            try:
                self._client.uninstall(module.name, module.version)
                uninstalled += 1
                continue
            except PackageManagerUnavailableError:
                raise
            except PackageManagerError as e:
                logger.debug("Uninstall of %s %s failed: %s", module.name, module.version, e)

            try:
                self._client.uninstall_all_versions(module.name)
                uninstalled += 1
                removed_all.add(module.name.lower())
            except PackageManagerUnavailableError:
                raise
            except PackageManagerError as e:
                logger.warning("Could not uninstall %s: %s", module.name, e)
                failures.append(module.name)
        return uninstalled

    def _delete_orphans(self, orphans: list[InstalledModule], failures: list[str]) -> int:
        """Delete the folders backing orphaned modules.

        Folders already gone are skipped. Names whose folder could not be
        deleted are appended to ``failures``.

        Returns:
            Number of folders deleted.
        """
        deleted = 0
        for orphan in orphans:
            if not orphan.location:
                logger.warning("Orphan %s has no known location", orphan.name)
                failures.append(orphan.name)
                continue

            location = Path(orphan.location)
            if not location.exists() and not location.is_symlink():
                logger.debug("Orphan folder already gone: %s", location)
                continue

            self._channel.publish(f"Deleting orphan {orphan.name} {orphan.version}")
            result = delete_path(location)
            if result.success:
                deleted += 1
            else:
                logger.warning("Could not delete orphan %s: %s", location, result.error)
                failures.append(orphan.name)
        return deleted

    def _reclaim(self) -> None:
        """Release handles held by removed modules before the next pass."""
        gc.collect()
        if self._reclaim_delay > 0:
            self._sleep(self._reclaim_delay)
