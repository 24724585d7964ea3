"""Snapshot diff, aggregation and process ranking."""

from collections.abc import Sequence

from cputop.models import (
    COUNTER_FIELDS,
    CounterRecord,
    CpuUsage,
    CycleReport,
    ProcessSample,
    RankedProcess,
    Snapshot,
)

TOP_N = 10


def clamp_diff(before: int, after: int) -> int:
    """Difference of two counter readings, 0 when the counter went backwards."""
    if after < before:
        return 0
    return after - before


def diff(before: CounterRecord, after: CounterRecord) -> CounterRecord:
    """Field-wise clamped delta of two counter records."""
    return CounterRecord(
        **{
            name: clamp_diff(getattr(before, name), getattr(after, name))
            for name in COUNTER_FIELDS
        }
    )


def percent_of(value: int, total: int) -> float:
    """Percentage of value in total, with total floored at 1."""
    return value / max(total, 1) * 100


def aggregate(delta: CounterRecord) -> CpuUsage:
    """Turn a counter delta into a usage percentage and category sub-totals."""
    total = delta.total()
    load = delta.load()
    return CpuUsage(
        percent=percent_of(load, total),
        total=total,
        load=load,
        idle=delta.idle + delta.iowait,
        iowait=delta.iowait,
        system=delta.system,
        user=delta.user + delta.nice,
        irq=delta.irq + delta.softirq,
        guest=delta.guest + delta.guest_nice,
    )


def core_usage(
    before: Sequence[CounterRecord],
    after: Sequence[CounterRecord],
) -> list[float]:
    """Usage percentage of each core, matched by index."""
    return [
        percent_of(delta.load(), delta.total())
        for delta in (diff(b, a) for b, a in zip(before, after))
    ]


def rank_processes(
    before: Sequence[ProcessSample],
    after: Sequence[ProcessSample],
    total: int,
    limit: int = TOP_N,
) -> list[RankedProcess]:
    """
    Rank the processes of ``after`` by CPU ticks consumed since ``before``.

    Both sequences must be sorted ascending by pid. They are aligned with a
    single merge walk; a pid missing from ``before`` is new and its whole
    tick count is its load. Ties on load are broken by ascending pid.

    Args:
        before: Processes of the earlier snapshot.
        after: Processes of the later snapshot.
        total: Aggregate tick total of the same cycle, used for percentages.
        limit: Maximum number of entries returned.
    """
    ranked: list[RankedProcess] = []
    cursor = 0
    for proc in after:
        while cursor < len(before) and before[cursor].pid < proc.pid:
            cursor += 1
        if cursor < len(before) and before[cursor].pid == proc.pid:
            load = clamp_diff(before[cursor].ticks, proc.ticks)
        else:
            load = proc.ticks
        ranked.append(
            RankedProcess(
                pid=proc.pid,
                comm=proc.comm,
                state=proc.state,
                priority=proc.priority,
                nice=proc.nice,
                load=load,
                percent=percent_of(load, total),
            )
        )

    ranked.sort(key=lambda entry: (-entry.load, entry.pid))
    return ranked[:limit]


def evaluate(before: Snapshot, after: Snapshot, limit: int = TOP_N) -> CycleReport:
    """Compute the full report of one cycle from two snapshots."""
    usage = aggregate(diff(before.aggregate, after.aggregate))
    cores = core_usage(before.cores, after.cores)

    if after.processes is None:
        return CycleReport(usage=usage, cores=cores)

    ranked = rank_processes(before.processes or [], after.processes, usage.total, limit)
    return CycleReport(
        usage=usage,
        cores=cores,
        processes=ranked,
        process_count=len(after.processes),
    )
