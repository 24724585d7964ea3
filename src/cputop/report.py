"""Text formatting of cycle reports."""

from cputop.models import CpuUsage, CycleReport, RankedProcess

PROCESS_HEADER = "  PID  PR  NI S    CPU  CNT COMMAND"


def format_title(core_count: int, show_cores: bool = True) -> str:
    """Column title printed once at startup."""
    title = "  load ( total   idle  iowait system   user      irq  guest)"
    if show_cores and core_count > 1:
        title += "".join(f"  cpu{i}" for i in range(core_count))
    return title


def format_usage(usage: CpuUsage) -> str:
    """Aggregate usage line with category sub-totals."""
    return (
        f"{usage.percent:5.1f}% (T:{usage.total:4d} I:{usage.idle:4d} "
        f"IO:{usage.iowait:4d} S:{usage.system:4d} U:{usage.user:4d} "
        f"IRQ:{usage.irq:4d} G:{usage.guest:4d})"
    )


def format_cores(cores: list[float]) -> str:
    """Fixed-width percentage column per core."""
    return "".join(f"{percent:5.1f}%" for percent in cores)


def format_process(proc: RankedProcess) -> str:
    """One row of the ranking table."""
    return (
        f"{proc.pid:5d} {proc.priority_label:>3} {proc.nice:3d} {proc.state} "
        f"{proc.percent:5.1f}% {proc.load:4d} {proc.comm}"
    )


def format_report(report: CycleReport, show_cores: bool = True) -> str:
    """
    Render a cycle report as terminal text.

    The first line holds the aggregate usage, followed by the per-core
    percentages when requested. A ranking, when present, follows as a process
    count, a header, one row per process and a blank line.
    """
    line = format_usage(report.usage)
    if show_cores:
        line += format_cores(report.cores)
    lines = [line]

    if report.processes is not None:
        lines.append(f"{report.process_count} processes")
        lines.append(PROCESS_HEADER)
        lines.extend(format_process(proc) for proc in report.processes)
        lines.append("")

    return "\n".join(lines)
