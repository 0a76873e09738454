"""Run history storage.

Repair runs are appended to a JSON Lines file so past outcomes can be
reviewed with ``psmodfix history``.
"""

import json
import logging
from pathlib import Path

from psmodfix.core.paths import ensure_state_dir, get_state_dir
from psmodfix.models.history import RunRecord

logger = logging.getLogger(__name__)


class RunHistory:
    """Manages run history in a JSONL file.

    Storage location: ~/.local/state/psmodfix/history.jsonl

    Attributes:
        state_dir: Directory containing the history file.
    """

    HISTORY_FILENAME = "history.jsonl"

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize RunHistory.

        Args:
            state_dir: Optional override for state directory.
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def history_path(self) -> Path:
        """Path to the history file."""
        return self._state_dir / self.HISTORY_FILENAME

    def record(self, entry: RunRecord) -> None:
        """Append a run record to the history file.

        Raises:
            RuntimeError: If the state directory cannot be created.
            OSError: If the file cannot be written.
        """
        if self._state_dir == get_state_dir():
            ensure_state_dir()
        else:
            self._state_dir.mkdir(parents=True, exist_ok=True)

        with self.history_path.open(mode="a", encoding="utf-8") as f:
            f.write(entry.to_json_line() + "\n")
            f.flush()

    def get_history(self, limit: int | None = None) -> list[RunRecord]:
        """Read run records, newest first.

        Corrupt lines are skipped with a warning.

        Args:
            limit: Maximum number of records to return. If None, returns all.

        Returns:
            List of RunRecord, newest first. Empty if the file doesn't exist.
        """
        if not self.history_path.exists():
            return []

        entries: list[RunRecord] = []
        with self.history_path.open(encoding="utf-8") as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entries.append(RunRecord.from_json_line(line))
                except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
                    logger.warning("Skipping corrupt history line %d: %s", line_num, e)

        entries.reverse()
        if limit is not None:
            return entries[:limit]
        return entries
