"""Data models for psmodfix.

This module exports the core data structures used throughout the application.
"""

from psmodfix.models.module import (
    InstalledModule,
    LoadedModuleFile,
    ModuleSource,
    PackageStatus,
    parse_version,
)
from psmodfix.models.report import (
    CleanupState,
    InstallOutcome,
    InstallReport,
    LockHolder,
    ReconciliationOutcome,
    ReconciliationPass,
    ReconciliationReport,
    RunLevel,
    RunSummary,
    SweepResult,
    ValidationReport,
    ValidationVerdict,
    summarize_run,
)
from psmodfix.models.selection import (
    DEFAULT_FAMILIES,
    Channel,
    InstallScope,
    MenuOption,
    ModuleFamily,
    PackageSelection,
    build_family_menu,
    find_sibling_pairs,
)

__all__ = [
    "DEFAULT_FAMILIES",
    "Channel",
    "CleanupState",
    "InstallOutcome",
    "InstallReport",
    "InstallScope",
    "InstalledModule",
    "LoadedModuleFile",
    "LockHolder",
    "MenuOption",
    "ModuleFamily",
    "ModuleSource",
    "PackageSelection",
    "PackageStatus",
    "ReconciliationOutcome",
    "ReconciliationPass",
    "ReconciliationReport",
    "RunLevel",
    "RunSummary",
    "SweepResult",
    "ValidationReport",
    "ValidationVerdict",
    "build_family_menu",
    "find_sibling_pairs",
    "parse_version",
    "summarize_run",
]
