"""Persistent X12 control number allocation.

ISA13 must never repeat for a submitter, so the next interchange number
lives in a JSON state file guarded by an fcntl lock. Every allocation is a
single locked read-modify-write, which keeps concurrent 837P runs sharing
the same counter directory from handing out the same number.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Optional
from datetime import datetime
import logging
import fcntl

logger = logging.getLogger(__name__)

MAX_INTERCHANGE_NUMBER = 999999999
GROUP_CONTROL_NUMBER = "1"
TRANSACTION_CONTROL_NUMBER = "0001"
MAX_BACKUPS = 20


class EDICounterManager:
    """Allocates interchange control numbers from a locked state file."""

    def __init__(self, counter_dir: Optional[str] = None, max_backups: int = MAX_BACKUPS):
        """Initialize counter manager.

        Args:
            counter_dir: Directory for counter files (default: 837_output/.counters)
            max_backups: Number of state file backups kept
        """
        self.counter_dir = Path(counter_dir or "837_output/.counters")
        self.counter_file = self.counter_dir / "edi_counters.json"
        self.lock_file = self.counter_dir / "edi_counters.lock"
        self.backup_dir = self.counter_dir / "backups"
        self.max_backups = max_backups

        self.backup_dir.mkdir(parents=True, exist_ok=True)

        with self._locked():
            if not self.counter_file.exists():
                self._write_state(self._initial_state())
                logger.info(f"Initialized counters at {self.counter_file}")

    @contextmanager
    def _locked(self):
        with open(self.lock_file, 'w') as handle:
            fcntl.flock(handle, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(handle, fcntl.LOCK_UN)

    @staticmethod
    def _initial_state() -> Dict:
        return {
            "interchange_control_number": 1,
            "allocations": 0,
            "last_allocated": None,
        }

    def _read_state(self) -> Dict:
        try:
            with open(self.counter_file, 'r') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading counters from {self.counter_file}: {e}")
            raise

    def _write_state(self, state: Dict, backup_label: Optional[str] = None):
        """Replace the state file atomically, backing up the previous one."""
        if backup_label and self.counter_file.exists():
            stamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
            backup_file = self.backup_dir / f"{backup_label}_{stamp}.json"
            backup_file.write_text(self.counter_file.read_text())
            self._prune_backups()

        state["last_updated"] = datetime.now().isoformat()

        temp_file = self.counter_file.with_suffix('.tmp')
        with open(temp_file, 'w') as f:
            json.dump(state, f, indent=2)
        temp_file.replace(self.counter_file)

    def _prune_backups(self):
        backups = sorted(self.backup_dir.glob("*.json"), key=lambda p: p.stat().st_mtime)
        for stale in backups[:-self.max_backups] if self.max_backups > 0 else backups:
            stale.unlink()

    def _update(self, change: Callable[[Dict], Dict], backup_label: str) -> Dict:
        """Apply change to the stored state under the lock and persist it."""
        with self._locked():
            state = change(self._read_state())
            self._write_state(state, backup_label)
            return state

    def get_next_interchange_number(self) -> str:
        """Allocate the next interchange control number (ISA13/IEA02).

        Wraps back to 1 after 999999999.

        Returns:
            Zero-padded 9-digit string
        """
        allocated = {}

        def allocate(state: Dict) -> Dict:
            current = int(state["interchange_control_number"])
            allocated["number"] = str(current).zfill(9)
            state["interchange_control_number"] = current + 1 if current < MAX_INTERCHANGE_NUMBER else 1
            state["allocations"] = state.get("allocations", 0) + 1
            state["last_allocated"] = allocated["number"]
            return state

        self._update(allocate, "counters")
        logger.info(f"Allocated interchange control number: {allocated['number']}")
        return allocated["number"]

    def get_group_number(self) -> str:
        """GS06/GE02: one functional group per interchange."""
        return GROUP_CONTROL_NUMBER

    def get_transaction_number(self) -> str:
        """ST02/SE02: one transaction set per interchange."""
        return TRANSACTION_CONTROL_NUMBER

    def get_current_values(self) -> Dict:
        """Return the stored state without allocating.

        interchange_control_number is the number the next interchange gets.
        """
        with self._locked():
            return self._read_state()

    def reset_counters(self, confirm: bool = False):
        """Reset the interchange counter to 1.

        Args:
            confirm: Must be True to actually reset

        Raises:
            ValueError: If confirm is not True
        """
        if not confirm:
            raise ValueError("Must confirm counter reset")

        def reset(state: Dict) -> Dict:
            fresh = self._initial_state()
            fresh["reset_at"] = datetime.now().isoformat()
            return fresh

        self._update(reset, "reset_backup")
        logger.warning("Interchange counter has been reset to 1")

    def set_interchange_counter(self, value: int):
        """Set the next interchange control number (recovery after a resubmission gap).

        Raises:
            ValueError: If value does not fit in ISA13
        """
        if not 1 <= value <= MAX_INTERCHANGE_NUMBER:
            raise ValueError(f"Interchange control number must be between 1 and {MAX_INTERCHANGE_NUMBER}")

        def assign(state: Dict) -> Dict:
            state["interchange_control_number"] = value
            return state

        self._update(assign, "counters")
        logger.info(f"Set interchange control number to {value}")
