"""Line-oriented cputop commands."""

import logging
import os
import sys
from enum import Enum
from typing import TextIO

from cputop.models import CycleReport
from cputop.monitor import CpuMonitor
from cputop.reader import PROC_ROOT, CputopError, SnapshotReader
from cputop.report import format_report, format_title

logger = logging.getLogger(__name__)

# Shell status of a process ended by SIGINT.
INTERRUPTED = 130


class Variant(Enum):
    """What each command reports."""

    SYSTEM = "system"
    CORES = "cores"
    PROCESSES = "processes"

    @property
    def show_cores(self) -> bool:
        """Whether per-core percentages are read and printed."""
        return self is not Variant.SYSTEM

    @property
    def with_processes(self) -> bool:
        """Whether processes are enumerated and ranked."""
        return self is Variant.PROCESSES


def build_monitor(
    variant: Variant,
    reader: SnapshotReader | None = None,
    proc_root: str | os.PathLike[str] = PROC_ROOT,
) -> CpuMonitor:
    """Build the sampler for a variant; the system variant reads the aggregate line only."""
    if reader is None:
        reader = SnapshotReader(
            core_count=None if variant.show_cores else 1,
            proc_root=proc_root,
            with_processes=variant.with_processes,
        )
    return CpuMonitor(reader)


def run(
    variant: Variant,
    monitor: CpuMonitor | None = None,
    out: TextIO | None = None,
    cycles: int | None = None,
) -> int:
    """
    Print the title, then one report per cycle.

    Returns:
        Process exit status: 0 after ``cycles`` reports, 1 when a counter
        source fails, 130 when interrupted with Ctrl-C.
    """
    if monitor is None:
        monitor = build_monitor(variant)
    if out is None:
        out = sys.stdout

    def emit(report: CycleReport) -> None:
        print(format_report(report, show_cores=variant.show_cores), file=out, flush=True)

    print(format_title(monitor.reader.core_count, variant.show_cores), file=out, flush=True)
    try:
        monitor.run(emit, cycles=cycles)
    except CputopError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return INTERRUPTED
    return 0


def _main(variant: Variant) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(run(variant))


def main() -> None:
    """Entry point for cputop: system, per-core and top processes."""
    _main(Variant.PROCESSES)


def main_system() -> None:
    """Entry point for cputop-system: whole-system usage only."""
    _main(Variant.SYSTEM)


def main_cores() -> None:
    """Entry point for cputop-cores: whole-system and per-core usage."""
    _main(Variant.CORES)


if __name__ == "__main__":
    main()
