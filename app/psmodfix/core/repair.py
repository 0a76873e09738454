"""Repair orchestration.

Runs cleanup, reinstall and validation in order for the selections made
in the interactive menus, and records the run to history. Shared by the
``repair`` and ``status`` CLI commands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from psmodfix.client.base import PackageManagerClient
from psmodfix.core.config import Settings
from psmodfix.core.history import RunHistory
from psmodfix.core.installer import Installer
from psmodfix.core.progress import StatusChannel
from psmodfix.core.reconciler import Reconciler
from psmodfix.core.sweep import FolderSweeper
from psmodfix.core.validator import Validator
from psmodfix.models.history import create_run_record
from psmodfix.models.report import (
    InstallReport,
    ReconciliationReport,
    RunSummary,
    ValidationReport,
    summarize_run,
)
from psmodfix.models.selection import PackageSelection

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RepairPlan:
    """Operator choices for one repair run.

    Attributes:
        remove: Families to clean up (may be empty).
        install: Families to reinstall, carrying the install scope (may be empty).
    """

    remove: PackageSelection
    install: PackageSelection


@dataclass(frozen=True, slots=True)
class RepairResult:
    """Reports produced by one repair run.

    Attributes:
        summary: Final status line.
        reconciliation: Cleanup report, None if cleanup was skipped.
        install: Install report, None if installation was skipped.
        validation: Validation report, None if installation was skipped.
    """

    summary: RunSummary
    reconciliation: ReconciliationReport | None = None
    install: InstallReport | None = None
    validation: ValidationReport | None = None


def run_repair(
    plan: RepairPlan,
    client: PackageManagerClient,
    settings: Settings,
    *,
    channel: StatusChannel | None = None,
    sweeper: FolderSweeper | None = None,
) -> RepairResult:
    """Execute a repair plan.

    Steps run strictly in sequence: cleanup (convergence loop, folder
    sweep, verification), then install, then validation.

    Args:
        plan: What to remove and what to reinstall.
        client: Package manager client.
        settings: Runtime settings.
        channel: Channel receiving progress messages.
        sweeper: Folder sweeper; built from settings if None.

    Returns:
        RepairResult with all reports and the final summary.

    Raises:
        PackageManagerUnavailableError: If the package manager cannot be used.
    """
    channel = channel or StatusChannel()
    reconciliation: ReconciliationReport | None = None
    install: InstallReport | None = None
    validation: ValidationReport | None = None

    if not plan.remove.is_empty:
        reconciler = Reconciler(
            client,
            sweeper or FolderSweeper(extra_roots=settings.extra_module_roots),
            reclaim_delay=settings.reclaim_delay_seconds,
            channel=channel,
        )
        reconciliation = reconciler.reconcile(plan.remove)

    if not plan.install.is_empty:
        install = Installer(client, channel=channel).install(plan.install, plan.install.scope)
        channel.publish("Validating installed versions")
        validation = Validator(client).validate(plan.install, install)

    summary = summarize_run(reconciliation, install, validation)
    return RepairResult(
        summary=summary,
        reconciliation=reconciliation,
        install=install,
        validation=validation,
    )


def record_run(plan: RepairPlan, result: RepairResult, history: RunHistory | None = None) -> bool:
    """Append a repair run to history.

    Errors are logged and do not interrupt the calling command.

    Returns:
        True if the run was recorded.
    """
    entry = create_run_record(
        result.summary,
        removed=plan.remove.module_names,
        reconciliation=result.reconciliation,
        install=result.install,
        validation=result.validation,
    )
    try:
        (history or RunHistory()).record(entry)
    except (OSError, RuntimeError) as e:
        logger.warning("Failed to record run to history: %s", e)
        return False
    return True
