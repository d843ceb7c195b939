#!/usr/bin/env python3
"""Test control number allocation and persistence."""

import sys
import json
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.utils.counter_manager import EDICounterManager, MAX_INTERCHANGE_NUMBER


def test_counter_starts_at_one(tmp_path):
    counter_mgr = EDICounterManager(str(tmp_path / "counters"))

    assert counter_mgr.get_current_values()["interchange_control_number"] == 1
    assert counter_mgr.get_next_interchange_number() == "000000001"


def test_only_interchange_counter_increments(tmp_path):
    """Group and transaction numbers are static, interchange numbers increment."""
    counter_mgr = EDICounterManager(str(tmp_path))

    interchange1 = counter_mgr.get_next_interchange_number()
    interchange2 = counter_mgr.get_next_interchange_number()

    assert len(interchange1) == 9, f"Interchange must be 9 chars, got {len(interchange1)}"
    assert len(interchange2) == 9, f"Interchange must be 9 chars, got {len(interchange2)}"
    assert int(interchange2) == int(interchange1) + 1, "Interchange should increment"
    assert counter_mgr.get_group_number() == "1"
    assert counter_mgr.get_transaction_number() == "0001"
    assert counter_mgr.get_current_values()["interchange_control_number"] == 3


def test_counter_persists_across_instances(tmp_path):
    first = EDICounterManager(str(tmp_path))
    used = {first.get_next_interchange_number() for _ in range(5)}

    second = EDICounterManager(str(tmp_path))
    used.add(second.get_next_interchange_number())

    assert len(used) == 6, "Control numbers must never repeat"
    stored = json.loads((tmp_path / "edi_counters.json").read_text())
    assert stored["interchange_control_number"] == 7


def test_counter_wraps_after_maximum(tmp_path):
    counter_mgr = EDICounterManager(str(tmp_path))
    counter_mgr.set_interchange_counter(MAX_INTERCHANGE_NUMBER)

    assert counter_mgr.get_next_interchange_number() == "999999999"
    assert counter_mgr.get_next_interchange_number() == "000000001"


def test_set_interchange_counter_rejects_out_of_range(tmp_path):
    counter_mgr = EDICounterManager(str(tmp_path))

    with pytest.raises(ValueError):
        counter_mgr.set_interchange_counter(0)
    with pytest.raises(ValueError):
        counter_mgr.set_interchange_counter(MAX_INTERCHANGE_NUMBER + 1)

    counter_mgr.set_interchange_counter(500)
    assert counter_mgr.get_next_interchange_number() == "000000500"


def test_reset_requires_confirmation(tmp_path):
    counter_mgr = EDICounterManager(str(tmp_path))
    counter_mgr.set_interchange_counter(42)

    with pytest.raises(ValueError):
        counter_mgr.reset_counters()

    counter_mgr.reset_counters(confirm=True)
    values = counter_mgr.get_current_values()
    assert values["interchange_control_number"] == 1
    assert "reset_at" in values
    assert any((tmp_path / "backups").glob("reset_backup_*.json"))
