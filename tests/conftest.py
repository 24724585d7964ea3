"""Shared fixtures: fake procfs trees."""

from pathlib import Path

import pytest


def counter_line(label: str, *values: int) -> str:
    return " ".join([label, *(str(v) for v in values)])


def stat_line(
    pid: int,
    comm: str,
    utime: int,
    stime: int,
    state: str = "S",
    priority: int = 20,
    nice: int = 0,
) -> str:
    """Build a /proc/<pid>/stat line in the kernel's layout."""
    return (
        f"{pid} ({comm}) {state} 1 {pid} {pid} 0 -1 4194560 120 0 0 0 "
        f"{utime} {stime} 0 0 {priority} {nice} 1 0 4242 10000000 300 "
        "18446744073709551615 1 1 0 0 0 0 0 0 0 0 0 17 0 0 0 0 0 0\n"
    )


class FakeProc:
    """A writable /proc lookalike rooted in a temporary directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def write_stat(self, *lines: str) -> None:
        (self.root / "stat").write_text("\n".join(lines) + "\nintr 0\nctxt 0\n")

    def add_process(self, pid: int, comm: str, utime: int, stime: int, **kwargs) -> None:
        directory = self.root / str(pid)
        directory.mkdir(exist_ok=True)
        (directory / "stat").write_text(stat_line(pid, comm, utime, stime, **kwargs))

    def add_raw_process(self, pid: int, content: str | None) -> None:
        directory = self.root / str(pid)
        directory.mkdir(exist_ok=True)
        if content is not None:
            (directory / "stat").write_text(content)


@pytest.fixture
def fake_proc(tmp_path: Path) -> FakeProc:
    """Empty fake procfs root."""
    return FakeProc(tmp_path)
