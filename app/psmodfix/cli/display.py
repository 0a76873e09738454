"""Shared Rich display functions for repair reports.

Provides table builders and summary printers for the cleanup, install
and validation steps, and the final status line of a run.
"""

from rich.table import Table

from psmodfix.models.report import (
    InstallReport,
    ReconciliationReport,
    RunLevel,
    RunSummary,
    ValidationReport,
    ValidationVerdict,
)
from psmodfix.models.selection import MenuOption
from psmodfix.utils.formatting import console, print_error, print_success, print_warning


def create_menu_table(title: str, options: list[MenuOption], default: int) -> Table:
    """Create a Rich table listing numbered menu options.

    Args:
        title: Table title (the question being asked).
        options: Options to list.
        default: Number of the default option, marked in the table.

    Returns:
        Rich Table configured for menu display.
    """
    table = Table(
        title=title,
        show_header=False,
        border_style="border",
    )
    table.add_column("#", width=3, justify="right", style="info")
    table.add_column("Modules")

    for option in options:
        label = option.label
        if option.number == default:
            label += " [muted](default)[/muted]"
        table.add_row(str(option.number), label)

    return table


def create_passes_table(report: ReconciliationReport) -> Table:
    """Create a Rich table with per-pass cleanup counters."""
    table = Table(
        title="Cleanup Passes",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Pass", justify="right")
    table.add_column("Registered", justify="right")
    table.add_column("On Path", justify="right")
    table.add_column("Orphans Removed", justify="right")
    table.add_column("Pending", justify="right")

    for p in report.passes:
        pending = f"[warning]{p.failures_pending}[/warning]" if p.failures_pending else "0"
        table.add_row(
            str(p.iteration),
            str(p.installed_found),
            str(p.path_only_found),
            str(p.orphans_removed),
            pending,
        )

    return table


def print_reconciliation_report(report: ReconciliationReport) -> None:
    """Print the cleanup report, including residual items."""
    console.print(create_passes_table(report))

    if report.converged:
        console.print(f"\nCleanup converged after {report.iterations_run} pass(es).")
    else:
        print_warning(f"Cleanup stopped after {report.iterations_run} passes without converging.")

    console.print(
        f"Uninstalled [success]{report.total_uninstalled}[/success], "
        f"orphans removed [success]{report.total_orphans_removed}[/success], "
        f"folder items removed [success]{report.swept_removed}[/success]"
        + (f", [error]{report.swept_failed} failed[/error]" if report.swept_failed else "")
    )

    if report.lock_holders:
        print_warning("Module files in use by other PowerShell sessions:")
        for holder in report.lock_holders:
            console.print(f"  {holder.label}: {', '.join(holder.modules)}")

    if report.pending_manual_cleanup:
        print_warning("Pending manual cleanup: " + ", ".join(report.pending_manual_cleanup))

    if report.residual_items:
        print_warning(f"{len(report.residual_items)} residual item(s) remain:")
        for path in report.residual_items:
            console.print(f"  [muted]{path}[/muted]")


def create_install_table(report: InstallReport) -> Table:
    """Create a Rich table with one row per installed family."""
    table = Table(
        title="Install Results",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=8, justify="center")
    table.add_column("Module", no_wrap=True)
    table.add_column("Message")

    for name, outcome in report.per_family.items():
        if outcome.success:
            table.add_row("[success]OK[/success]", name, "")
        else:
            table.add_row(
                "[error]FAIL[/error]",
                name,
                f"[muted]{outcome.error or 'Unknown error'}[/muted]",
            )

    return table


def print_validation_report(report: ValidationReport) -> None:
    """Print resolved versions and any sibling mismatch."""
    for name, version in report.resolved.items():
        if version is None:
            console.print(f"  [missing]{name}[/missing]: not installed")
        else:
            console.print(f"  [module.name]{name}[/module.name] [muted]{version}[/muted]")

    if report.verdict == ValidationVerdict.VERSION_MISMATCH:
        for stable, preview in report.mismatches:
            print_warning(
                f"{stable} {report.resolved[stable]} and {preview} {report.resolved[preview]} "
                "differ; mixing them causes assembly load conflicts."
            )


def print_run_summary(summary: RunSummary) -> None:
    """Print the final status line of a repair run."""
    if summary.level == RunLevel.SUCCESS:
        print_success("\nSuccess: module families repaired.")
        return

    if summary.level == RunLevel.WARNING:
        print_warning("Completed with warnings:")
    else:
        print_error("Repair failed:")
    for reason in summary.reasons:
        console.print(f"  - {reason}")
