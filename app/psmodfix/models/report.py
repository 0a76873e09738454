"""Report models for the repair workflow.

This module defines the results produced by the Reconciler, Installer
and Validator, and the overall run summary printed at the end of a
repair.
"""

from dataclasses import dataclass, field
from enum import Enum

from packaging.version import Version


class ReconciliationOutcome(str, Enum):
    """Terminal state of the convergence loop.

    Attributes:
        CONVERGED: Both discovery sources reported zero matches.
        MAX_ITERATIONS_EXCEEDED: The pass limit was reached first.
            This is a warning state; the report lists what remains.
    """

    CONVERGED = "converged"
    MAX_ITERATIONS_EXCEEDED = "max_iterations_exceeded"


class CleanupState(str, Enum):
    """Result of the verification pass."""

    CLEAN = "clean"
    RESIDUAL_ITEMS = "residual_items"


@dataclass(frozen=True, slots=True)
class ReconciliationPass:
    """Counters of a single convergence-loop iteration.

    Attributes:
        iteration: 1-based pass number.
        installed_found: Registry-tracked records found.
        path_only_found: Search-path records found.
        orphans_removed: Orphan folders deleted in this pass.
        failures_pending: Names that could not be removed in this pass.
    """

    iteration: int
    installed_found: int
    path_only_found: int
    orphans_removed: int = 0
    failures_pending: int = 0

    @property
    def total_found(self) -> int:
        """Combined record count across both discovery sources."""
        return self.installed_found + self.path_only_found


@dataclass(frozen=True, slots=True)
class SweepResult:
    """Outcome of the item-by-item folder sweep.

    Attributes:
        removed: Items deleted.
        failed: Items that could not be deleted.
        errors: Path to error message for each failed item.
    """

    removed: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class LockHolder:
    """A PowerShell session that has modules of the selection loaded.

    Attributes:
        pid: Process ID.
        process: Process name.
        modules: Names of the loaded modules, sorted.
    """

    pid: int
    process: str
    modules: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        """Short description such as 'pwsh (1234)'."""
        return f"{self.process} ({self.pid})"


@dataclass(frozen=True, slots=True)
class ReconciliationReport:
    """Aggregate result of :meth:`Reconciler.reconcile`.

    Attributes:
        outcome: Terminal state of the convergence loop.
        iterations_run: Number of passes executed (never above the limit).
        total_uninstalled: Registry uninstalls that succeeded.
        total_orphans_removed: Orphan folders deleted.
        residual_items: Paths still present after the verification pass.
        pending_manual_cleanup: Module names that could not be removed.
        swept_removed: Items deleted by the folder sweep.
        swept_failed: Items the folder sweep could not delete.
        passes: Per-iteration counters.
        lock_holders: Other PowerShell sessions found holding module files
            of the selection before the first pass.
    """

    outcome: ReconciliationOutcome
    iterations_run: int
    total_uninstalled: int = 0
    total_orphans_removed: int = 0
    residual_items: tuple[str, ...] = ()
    pending_manual_cleanup: tuple[str, ...] = ()
    swept_removed: int = 0
    swept_failed: int = 0
    passes: tuple[ReconciliationPass, ...] = ()
    lock_holders: tuple[LockHolder, ...] = ()

    @property
    def cleanup_state(self) -> CleanupState:
        """CLEAN when the verification pass found nothing left behind."""
        if self.residual_items:
            return CleanupState.RESIDUAL_ITEMS
        return CleanupState.CLEAN

    @property
    def converged(self) -> bool:
        """Check if the convergence loop reached zero matches."""
        return self.outcome == ReconciliationOutcome.CONVERGED


@dataclass(frozen=True, slots=True)
class InstallOutcome:
    """Install result for one family.

    Attributes:
        module: Root module that was installed.
        success: Whether the install primitive completed.
        error: Error message if the install failed.
    """

    module: str
    success: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class InstallReport:
    """Aggregate result of :meth:`Installer.install`.

    Attributes:
        per_family: Root module name to its install outcome, in install order.
    """

    per_family: dict[str, InstallOutcome] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        """Number of families installed successfully."""
        return sum(1 for o in self.per_family.values() if o.success)

    @property
    def failed(self) -> int:
        """Number of families whose install failed."""
        return sum(1 for o in self.per_family.values() if not o.success)

    @property
    def targeted(self) -> tuple[str, ...]:
        """Root module names that were targeted for install."""
        return tuple(self.per_family)


class ValidationVerdict(str, Enum):
    """Verdict of the post-install validation.

    Attributes:
        SUCCESS: Every targeted family resolves to an installed version.
        VERSION_MISMATCH: All resolved, but stable and preview siblings
            report different versions (warning).
        FAILED: At least one targeted family did not resolve.
    """

    SUCCESS = "success"
    VERSION_MISMATCH = "version_mismatch"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Aggregate result of :meth:`Validator.validate`.

    Attributes:
        verdict: Overall verdict.
        resolved: Root module name to its installed version (None if missing).
        mismatches: (stable, preview) module name pairs with version skew.
    """

    verdict: ValidationVerdict
    resolved: dict[str, Version | None] = field(default_factory=dict)
    mismatches: tuple[tuple[str, str], ...] = ()

    @property
    def unresolved(self) -> tuple[str, ...]:
        """Targeted modules without an installed version."""
        return tuple(name for name, version in self.resolved.items() if version is None)


class RunLevel(str, Enum):
    """Severity of the final status line of a repair run."""

    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Final status of a repair run.

    Attributes:
        level: Overall severity.
        reasons: Human-readable reasons for a warning or failure.
    """

    level: RunLevel
    reasons: tuple[str, ...] = ()


def summarize_run(
    reconciliation: ReconciliationReport | None,
    install: InstallReport | None = None,
    validation: ValidationReport | None = None,
) -> RunSummary:
    """Derive the final status line of a repair run.

    Failed installs or an unresolved family make the run FAILED; residual
    items, pending manual cleanup, the iteration cap, and sibling version
    skew make it a WARNING.

    Args:
        reconciliation: Cleanup report, or None if cleanup was skipped.
        install: Install report, or None if installation was skipped.
        validation: Validation report, or None if installation was skipped.

    Returns:
        RunSummary with level and reasons.
    """
    failures: list[str] = []
    warnings: list[str] = []

    if install is not None:
        for name, outcome in install.per_family.items():
            if not outcome.success:
                failures.append(f"{name}: install failed ({outcome.error or 'unknown error'})")

    if validation is not None:
        for name in validation.unresolved:
            failures.append(f"{name}: not installed after reinstall")
        for stable, preview in validation.mismatches:
            warnings.append(f"version mismatch between {stable} and {preview}")

    if reconciliation is not None:
        if not reconciliation.converged:
            warnings.append(
                f"cleanup stopped after {reconciliation.iterations_run} passes without converging"
            )
        if reconciliation.residual_items:
            warnings.append(f"{len(reconciliation.residual_items)} residual item(s) left on disk")
        if reconciliation.pending_manual_cleanup:
            names = ", ".join(reconciliation.pending_manual_cleanup)
            warnings.append(f"pending manual cleanup: {names}")
        incomplete = not reconciliation.converged or reconciliation.residual_items
        if incomplete and reconciliation.lock_holders:
            labels = ", ".join(h.label for h in reconciliation.lock_holders)
            warnings.append(f"close PowerShell sessions holding module files: {labels}")

    if failures:
        return RunSummary(level=RunLevel.FAILED, reasons=tuple(failures + warnings))
    if warnings:
        return RunSummary(level=RunLevel.WARNING, reasons=tuple(warnings))
    return RunSummary(level=RunLevel.SUCCESS)
