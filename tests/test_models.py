"""Tests for cputop data models."""

import pytest

from cputop.models import (
    COUNTER_FIELDS,
    CounterRecord,
    ProcessSample,
    RankedProcess,
    Snapshot,
)


def test_counter_record_defaults_to_zero():
    """Test counters not given default to 0."""
    record = CounterRecord(user=1, nice=2, system=3, idle=4)

    assert record.iowait == 0
    assert record.guest_nice == 0
    assert record.total() == 10


def test_counter_fields_order():
    """Test the field order matches the /proc/stat column order."""
    assert COUNTER_FIELDS == (
        "user",
        "nice",
        "system",
        "idle",
        "iowait",
        "irq",
        "softirq",
        "steal",
        "guest",
        "guest_nice",
    )


def test_counter_record_load_excludes_idle_and_iowait():
    """Test load is total minus idle and iowait."""
    record = CounterRecord(*range(1, 11))

    assert record.total() == 55
    assert record.load() == record.total() - record.idle - record.iowait


def test_counter_record_is_frozen():
    """Test that CounterRecord is immutable (frozen)."""
    record = CounterRecord()

    with pytest.raises(AttributeError):
        record.user = 5


def test_process_sample_ticks():
    """Test the load basis only counts the process's own user and system time."""
    sample = ProcessSample(
        pid=42,
        comm="worker",
        state="R",
        utime=30,
        stime=12,
        cutime=1000,
        cstime=1000,
        priority=20,
        nice=0,
    )

    assert sample.ticks == 42


def test_process_sample_uses_slots():
    """Test that ProcessSample uses __slots__ for memory efficiency."""
    sample = ProcessSample(1, "init", "S", 0, 0, 0, 0, 20, 0)

    assert not hasattr(sample, "__dict__")


def test_snapshot_defaults():
    """Test a new Snapshot is empty and carries no process list."""
    snapshot = Snapshot()

    assert snapshot.aggregate == CounterRecord()
    assert snapshot.cores == []
    assert snapshot.processes is None


def test_snapshot_lists_are_not_shared():
    """Test each Snapshot gets its own core list."""
    first = Snapshot()
    second = Snapshot()

    first.cores.append(CounterRecord())

    assert second.cores == []


class TestRankedProcessPriority:
    """Tests for real-time priority classification."""

    @pytest.mark.parametrize("priority", [-99, 0, 20, 39, 999])
    def test_normal_priority(self, priority):
        """Test priorities within [-99, 999] print numerically."""
        proc = RankedProcess(1, "a", "S", priority, 0, 0, 0.0)

        assert not proc.is_realtime
        assert proc.priority_label == str(priority)

    @pytest.mark.parametrize("priority", [-100, 1000])
    def test_realtime_priority(self, priority):
        """Test priorities outside [-99, 999] are marked real-time."""
        proc = RankedProcess(1, "a", "S", priority, 0, 0, 0.0)

        assert proc.is_realtime
        assert proc.priority_label == "rt"
