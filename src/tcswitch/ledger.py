"""
Experiment ledger.

Append-only text log of every experiment action. Each line is prefixed
with a local timestamp::

    [2026-10-17 14:03:12] Group 3 started

The ledger doubles as the store for resumption: the number of completed
groups is the number of lines carrying COMPLETION_MARKER.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Union

logger = logging.getLogger(__name__)

COMPLETION_MARKER = "[GROUP COMPLETE]"
INTERRUPT_MARKER = "[INTERRUPTED]"
REVEAL_MARKER = "[REVEAL]"
SEPARATOR = "=" * 56
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class RunLedger:
    """
    Append-only experiment log.

    Only one session may write to a ledger at a time; no locking is done.
    """

    def __init__(
        self,
        path: Union[str, Path],
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the ledger.

        Args:
            path: Ledger file. Created on first append.
            clock: Source of local time for timestamps.
        """
        self.path = Path(path)
        self._clock = clock

    def timestamp(self) -> str:
        """Current local time in ledger format."""
        return self._clock().strftime(TIMESTAMP_FORMAT)

    def append(self, message: str) -> None:
        """
        Append a timestamped entry to the ledger.

        A multi-line message is written as one timestamped line per line.
        """
        stamp = self.timestamp()
        lines = message.splitlines() or [""]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.writelines(f"[{stamp}] {line}\n" for line in lines)

    def completed_groups(self) -> int:
        """Number of groups that ran to completion."""
        if not self.path.exists():
            return 0

        with open(self.path, encoding="utf-8", errors="replace") as f:
            return sum(1 for line in f if COMPLETION_MARKER in line)

    def current_group_number(self) -> int:
        """Group number for the next run: completed groups + 1."""
        group = self.completed_groups() + 1
        logger.debug(f"Ledger {self.path}: next group is {group}")
        return group
