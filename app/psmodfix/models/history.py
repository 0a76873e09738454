"""Run history model.

This module defines the record appended to the history file after each
repair run.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from psmodfix.models.report import (
    InstallReport,
    ReconciliationReport,
    RunSummary,
    ValidationReport,
)


@dataclass(frozen=True, slots=True)
class RunRecord:
    """Record of a single repair run.

    Attributes:
        id: Unique identifier (12-character hex string from UUID).
        timestamp: When the run finished (ISO 8601 format with timezone).
        level: Final status level ('success', 'warning', 'failed').
        removed: Root modules of the families selected for cleanup.
        installed: Root module to install success for the reinstall step.
        outcome: Convergence loop outcome, None if cleanup was skipped.
        iterations_run: Number of cleanup passes.
        residual_items: Paths left on disk after verification.
        verdict: Validation verdict, None if installation was skipped.
        reasons: Reasons printed with the final status line.
    """

    id: str
    timestamp: str
    level: str
    removed: tuple[str, ...] = ()
    installed: dict[str, bool] = field(default_factory=lambda: {})
    outcome: str | None = None
    iterations_run: int = 0
    residual_items: tuple[str, ...] = ()
    verdict: str | None = None
    reasons: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate record data after initialization."""
        if not self.id:
            msg = "Run record ID cannot be empty"
            raise ValueError(msg)
        if not self.timestamp:
            msg = "Timestamp cannot be empty"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "level": self.level,
            "removed": list(self.removed),
            "installed": dict(self.installed),
            "outcome": self.outcome,
            "iterations_run": self.iterations_run,
            "residual_items": list(self.residual_items),
            "verdict": self.verdict,
            "reasons": list(self.reasons),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunRecord:
        """Deserialize from dictionary.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            level=data["level"],
            removed=tuple(data.get("removed", ())),
            installed=dict(data.get("installed", {})),
            outcome=data.get("outcome"),
            iterations_run=int(data.get("iterations_run", 0)),
            residual_items=tuple(data.get("residual_items", ())),
            verdict=data.get("verdict"),
            reasons=tuple(data.get("reasons", ())),
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_json_line(cls, line: str) -> RunRecord:
        """Deserialize from a JSON line.

        Raises:
            json.JSONDecodeError: If line is not valid JSON.
            KeyError: If required fields are missing.
            ValueError: If data is invalid.
        """
        return cls.from_dict(json.loads(line.strip()))


def create_run_record(
    summary: RunSummary,
    removed: tuple[str, ...],
    reconciliation: ReconciliationReport | None = None,
    install: InstallReport | None = None,
    validation: ValidationReport | None = None,
) -> RunRecord:
    """Factory function to create a RunRecord from the reports of a run.

    Automatically generates a unique ID and current timestamp.
    """
    return RunRecord(
        id=uuid.uuid4().hex[:12],
        timestamp=datetime.now(UTC).isoformat(),
        level=summary.level.value,
        removed=removed,
        installed=(
            {name: o.success for name, o in install.per_family.items()} if install else {}
        ),
        outcome=reconciliation.outcome.value if reconciliation else None,
        iterations_run=reconciliation.iterations_run if reconciliation else 0,
        residual_items=reconciliation.residual_items if reconciliation else (),
        verdict=validation.verdict.value if validation else None,
        reasons=summary.reasons,
    )
