"""Data models for cputop."""

from dataclasses import dataclass, field, fields

# Priorities outside this range belong to real-time scheduled processes.
PRIORITY_MIN = -99
PRIORITY_MAX = 999


@dataclass(slots=True, frozen=True)
class CounterRecord:
    """Cumulative CPU time-in-state counters, in kernel ticks."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0

    def total(self) -> int:
        """Sum of all ten counters."""
        return (
            self.user
            + self.nice
            + self.system
            + self.idle
            + self.iowait
            + self.irq
            + self.softirq
            + self.steal
            + self.guest
            + self.guest_nice
        )

    def load(self) -> int:
        """Ticks spent doing work (everything except idle and iowait)."""
        return (
            self.user
            + self.nice
            + self.system
            + self.irq
            + self.softirq
            + self.steal
            + self.guest
            + self.guest_nice
        )


COUNTER_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(CounterRecord))


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Scheduling counters of one process, as read from its stat record."""

    pid: int
    comm: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    utime: int
    stime: int
    cutime: int
    cstime: int
    priority: int
    nice: int

    @property
    def ticks(self) -> int:
        """Load basis: user plus system ticks of the process itself."""
        return self.utime + self.stime


@dataclass(slots=True)
class Snapshot:
    """
    Point-in-time sample of every counter source.

    Mutable so the reader can refill an existing instance in place.
    """

    aggregate: CounterRecord = field(default_factory=CounterRecord)
    cores: list[CounterRecord] = field(default_factory=list)
    processes: list[ProcessSample] | None = None


@dataclass(slots=True, frozen=True)
class CpuUsage:
    """Utilisation derived from one counter delta."""

    percent: float  # 0.0 - 100.0
    total: int
    load: int
    idle: int  # idle + iowait
    iowait: int
    system: int
    user: int  # user + nice
    irq: int  # irq + softirq
    guest: int  # guest + guest_nice


@dataclass(slots=True, frozen=True)
class RankedProcess:
    """A process entry of the top-N ranking."""

    pid: int
    comm: str
    state: str
    priority: int
    nice: int
    load: int
    percent: float

    @property
    def is_realtime(self) -> bool:
        """Whether the priority lies outside the normal range."""
        return self.priority > PRIORITY_MAX or self.priority < PRIORITY_MIN

    @property
    def priority_label(self) -> str:
        """Priority as displayed: the number, or "rt" for real-time."""
        return "rt" if self.is_realtime else str(self.priority)


@dataclass(slots=True)
class CycleReport:
    """Everything one polling cycle produces for display."""

    usage: CpuUsage
    cores: list[float]
    processes: list[RankedProcess] | None = None
    process_count: int = 0
