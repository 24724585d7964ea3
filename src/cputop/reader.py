"""Snapshot reader: parses /proc/stat and /proc/<pid>/stat into snapshots."""

import logging
import os
from collections.abc import Callable, Sequence
from pathlib import Path

import psutil

from cputop.models import COUNTER_FIELDS, CounterRecord, ProcessSample, Snapshot

logger = logging.getLogger(__name__)

PROC_ROOT = "/proc"
COMM_MAX_LEN = 15

# Older kernels expose only user, nice, system and idle.
MIN_COUNTER_FIELDS = 4

# Fields bound from a process stat record; everything else is skipped.
PROCESS_STAT_FIELDS = ("state", "utime", "stime", "cutime", "cstime", "priority", "nice")


class CputopError(Exception):
    """Base class for counter source errors."""


class SourceUnavailable(CputopError):
    """A counter source could not be opened or read."""


class MalformedRecord(CputopError):
    """A required counter line is missing or has too few fields."""


class ProcessReadSkipped(CputopError):
    """A single process record could not be read or parsed."""


def _unsigned(token: str) -> int:
    value = int(token)
    if value < 0:
        raise ValueError(f"negative counter: {token}")
    return value


def _state(token: str) -> str:
    if not token:
        raise ValueError("empty state")
    return token[0]


# Layout of a process stat record after the closing parenthesis.
# ``None`` names a positional field that must be present but is not kept.
_PROCESS_LAYOUT: tuple[tuple[str | None, Callable[[str], object]], ...] = (
    ("state", _state),
    (None, int),  # ppid
    (None, int),  # pgrp
    (None, int),  # session
    (None, int),  # tty_nr
    (None, int),  # tpgid
    (None, _unsigned),  # flags
    (None, _unsigned),  # minflt
    (None, _unsigned),  # cminflt
    (None, _unsigned),  # majflt
    (None, _unsigned),  # cmajflt
    ("utime", _unsigned),
    ("stime", _unsigned),
    ("cutime", int),
    ("cstime", int),
    ("priority", int),
    ("nice", int),
)


def bind_fields(
    tokens: Sequence[str],
    layout: Sequence[tuple[str | None, Callable[[str], object]]],
) -> dict[str, object]:
    """
    Bind tokens positionally against a layout.

    Binding stops at the first missing token or the first token that does not
    convert, like a scanf that returns early. Only named layout entries end up
    in the result, so its length is the number of successfully bound fields.
    """
    bound: dict[str, object] = {}
    for index, (name, convert) in enumerate(layout):
        if index >= len(tokens):
            break
        try:
            value = convert(tokens[index])
        except ValueError:
            break
        if name is not None:
            bound[name] = value
    return bound


def parse_counter_line(line: str, label: str | None = "cpu") -> CounterRecord:
    """
    Parse a ``cpu`` or ``cpuN`` line of /proc/stat.

    Args:
        line: The raw line.
        label: Exact leading token expected, or None to accept any ``cpu<index>``.

    Raises:
        MalformedRecord: Wrong label or fewer than four counters.
    """
    tokens = line.split()
    if not tokens:
        raise MalformedRecord("empty counter line")
    head = tokens[0]
    if label is not None:
        if head != label:
            raise MalformedRecord(f"expected {label!r} line, got {head!r}")
    elif not (head.startswith("cpu") and head[3:].isdigit()):
        raise MalformedRecord(f"expected per-core line, got {head!r}")

    bound = bind_fields(tokens[1:], [(name, _unsigned) for name in COUNTER_FIELDS])
    if len(bound) < MIN_COUNTER_FIELDS:
        raise MalformedRecord(f"{head}: only {len(bound)} counter fields")
    return CounterRecord(**bound)


def parse_process_stat(line: str, pid: int) -> ProcessSample:
    """
    Parse the single line of /proc/<pid>/stat.

    The command name sits between the first '(' and the last ')' and may
    itself contain parentheses or spaces.

    Raises:
        ProcessReadSkipped: The line does not bind all seven required fields.
    """
    start = line.find("(")
    end = line.rfind(")")
    if start < 0 or end < start:
        raise ProcessReadSkipped(f"pid {pid}: no command name")
    comm = line[start + 1 : end][:COMM_MAX_LEN]

    bound = bind_fields(line[end + 1 :].split(), _PROCESS_LAYOUT)
    if len(bound) != len(PROCESS_STAT_FIELDS):
        raise ProcessReadSkipped(f"pid {pid}: only {len(bound)} stat fields")
    return ProcessSample(pid=pid, comm=comm, **bound)


class SnapshotReader:
    """
    Reads counter snapshots from a procfs tree.

    The per-core section of /proc/stat is only consumed when more than one
    core is online; a single-core machine reports its aggregate only.
    """

    def __init__(
        self,
        core_count: int | None = None,
        proc_root: str | os.PathLike[str] = PROC_ROOT,
        with_processes: bool = True,
    ) -> None:
        """
        Initialize the SnapshotReader.

        Args:
            core_count: Expected number of per-core lines. Defaults to the
                number of online logical CPUs.
            proc_root: Root of the procfs tree. Default /proc.
            with_processes: Whether to enumerate processes as well.
        """
        if core_count is None:
            core_count = psutil.cpu_count(logical=True) or 1
        self._core_count = core_count
        self._root = Path(proc_root)
        self._with_processes = with_processes

    @property
    def core_count(self) -> int:
        """Number of per-core lines expected in /proc/stat."""
        return self._core_count

    @property
    def with_processes(self) -> bool:
        """Whether snapshots include the process list."""
        return self._with_processes

    def read(self) -> Snapshot:
        """Read a fresh snapshot."""
        snapshot = Snapshot()
        self.read_into(snapshot)
        return snapshot

    def read_into(self, snapshot: Snapshot) -> None:
        """Refill an existing snapshot, reusing its lists."""
        aggregate, cores = self.read_counters()
        snapshot.aggregate = aggregate
        snapshot.cores[:] = cores
        if not self._with_processes:
            snapshot.processes = None
            return
        processes = self.read_processes()
        if snapshot.processes is None:
            snapshot.processes = processes
        else:
            snapshot.processes[:] = processes

    def read_counters(self) -> tuple[CounterRecord, list[CounterRecord]]:
        """
        Read the aggregate and per-core records from /proc/stat.

        Raises:
            SourceUnavailable: /proc/stat cannot be read.
            MalformedRecord: A required line is missing or too short.
        """
        path = self._root / "stat"
        try:
            lines = path.read_text().splitlines()
        except OSError as exc:
            raise SourceUnavailable(f"{path}: {exc.strerror or exc}") from exc

        if not lines:
            raise MalformedRecord(f"{path}: empty")
        aggregate = parse_counter_line(lines[0])

        cores: list[CounterRecord] = []
        if self._core_count > 1:
            if len(lines) - 1 < self._core_count:
                raise MalformedRecord(
                    f"{path}: expected {self._core_count} per-core lines, "
                    f"found at most {len(lines) - 1}"
                )
            for line in lines[1 : self._core_count + 1]:
                cores.append(parse_counter_line(line, label=None))
        return aggregate, cores

    def read_processes(self) -> list[ProcessSample]:
        """
        Collect samples of all running processes, sorted by pid.

        Processes that vanish between enumeration and read, or whose record
        does not parse, are skipped.

        Raises:
            SourceUnavailable: The process directory cannot be listed.
        """
        try:
            entries = [entry.name for entry in os.scandir(self._root)]
        except OSError as exc:
            raise SourceUnavailable(f"{self._root}: {exc.strerror or exc}") from exc

        processes: list[ProcessSample] = []
        for name in entries:
            if not name.isdigit():
                continue
            try:
                processes.append(self._read_process(int(name)))
            except ProcessReadSkipped as exc:
                logger.debug("Skipping process: %s", exc)
                continue

        processes.sort(key=lambda proc: proc.pid)
        return processes

    def _read_process(self, pid: int) -> ProcessSample:
        path = self._root / str(pid) / "stat"
        try:
            with path.open("r", errors="replace") as handle:
                line = handle.readline()
        except OSError as exc:
            raise ProcessReadSkipped(f"{path}: {exc.strerror or exc}") from exc
        return parse_process_stat(line, pid)
