"""Low-level schedstat interface for Linux scheduling counters.

Reads procfs text records directly - no subprocess, no ctypes.

This module provides access to:
- /proc/<pid>/schedstat: per-task run time, run-queue wait time, timeslices
- /proc/<pid>/stat: existence probe and command name
- /proc/schedstat: per-CPU counters, summed into a whole-system aggregate

Per-process readers handle process disappearance gracefully by returning
None. The system-wide reader raises SchedstatUnavailable when the facility
is missing, since nothing useful can be done without it.
"""

import re
from dataclasses import dataclass
from pathlib import Path

# ─────────────────────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_PROC_ROOT = Path("/proc")

# /proc/schedstat layouts this parser knows about (kernel 2.6.23+ / 4.x+)
SUPPORTED_VERSIONS = frozenset({15, 16, 17})

# 1-indexed positions of the per-CPU fields after the "cpuN" label
CPU_RUN_TIME_FIELD = 7  # rq_cpu_time
CPU_WAIT_TIME_FIELD = 8  # rq_sched_info.run_delay
CPU_TIMESLICES_FIELD = 9  # rq_sched_info.pcount

_DIGITS = re.compile(r"\d+")
_CPU_LABEL = re.compile(r"cpu\d+")
_METADATA_LABELS = ("version", "timestamp", "domain")


# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────


class SchedwatchError(Exception):
    """Base class for schedwatch errors."""


class SchedstatFormatError(SchedwatchError, ValueError):
    """Raised when a schedstat record doesn't have the fields we need."""


class SchedstatUnavailable(SchedwatchError):
    """Raised when /proc/schedstat can't be opened (no CONFIG_SCHEDSTATS)."""


# ─────────────────────────────────────────────────────────────────────────────
# Structures
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True, frozen=True)
class Counters:
    """Cumulative scheduling counters as read from the kernel."""

    run_time: int  # Nanoseconds spent on a CPU
    wait_time: int  # Nanoseconds spent runnable on a run queue
    timeslices: int | None = None  # Times run on a CPU, if exposed


@dataclass(slots=True, frozen=True)
class SystemCounters:
    """Whole-system aggregate parsed from /proc/schedstat."""

    counters: Counters
    cpu_count: int
    version: int | None = None


# ─────────────────────────────────────────────────────────────────────────────
# Parsers
# ─────────────────────────────────────────────────────────────────────────────


def parse_task_schedstat(line: str) -> Counters:
    """Parse a /proc/<pid>/schedstat line.

    Takes the first run of digits as run time and the next as wait time.
    A third run of digits, when present, is the timeslice count. Anything
    after that is ignored.

    Raises:
        SchedstatFormatError: If fewer than two numeric fields are present.
    """
    numbers = []
    for match in _DIGITS.finditer(line):
        numbers.append(int(match.group()))
        if len(numbers) == 3:
            break

    if len(numbers) < 2:
        raise SchedstatFormatError(f"Expected run and wait time, got {line.strip()!r}")

    return Counters(
        run_time=numbers[0],
        wait_time=numbers[1],
        timeslices=numbers[2] if len(numbers) > 2 else None,
    )


def parse_system_schedstat(text: str) -> SystemCounters:
    """Parse /proc/schedstat into a whole-system aggregate.

    Sums the 7th (run time) and 8th (wait time) fields of every cpuN line.
    The 9th field (timeslices) is summed only if every CPU line has one.
    version/timestamp/domainN lines are metadata and skipped.

    Raises:
        SchedstatFormatError: If a cpuN line has fewer than eight fields.
    """
    version: int | None = None
    run_time = 0
    wait_time = 0
    timeslices: int | None = 0
    cpu_count = 0

    for raw in text.splitlines():
        parts = raw.split()
        if not parts:
            continue
        label = parts[0]

        if label == "version":
            if len(parts) > 1 and parts[1].isdigit():
                version = int(parts[1])
            continue
        if label.startswith(_METADATA_LABELS) or not _CPU_LABEL.fullmatch(label):
            continue

        fields = parts[1:]
        if len(fields) < CPU_WAIT_TIME_FIELD:
            raise SchedstatFormatError(
                f"{label}: expected at least {CPU_WAIT_TIME_FIELD} fields, got {len(fields)}"
            )
        try:
            run_time += int(fields[CPU_RUN_TIME_FIELD - 1])
            wait_time += int(fields[CPU_WAIT_TIME_FIELD - 1])
            if timeslices is not None and len(fields) >= CPU_TIMESLICES_FIELD:
                timeslices += int(fields[CPU_TIMESLICES_FIELD - 1])
            else:
                timeslices = None
        except ValueError as e:
            raise SchedstatFormatError(f"{label}: non-numeric field ({e})") from e
        cpu_count += 1

    if cpu_count == 0:
        timeslices = None

    return SystemCounters(
        counters=Counters(run_time=run_time, wait_time=wait_time, timeslices=timeslices),
        cpu_count=cpu_count,
        version=version,
    )


def parse_command(stat_line: str) -> str | None:
    """Extract the command name from a /proc/<pid>/stat line.

    The comm field is wrapped in parentheses and may itself contain spaces
    or parentheses, so take everything up to the last ')'.
    """
    start = stat_line.find("(")
    end = stat_line.rfind(")")
    if start == -1 or end <= start:
        return None
    return stat_line[start + 1 : end]


# ─────────────────────────────────────────────────────────────────────────────
# Readers
# ─────────────────────────────────────────────────────────────────────────────


class ProcSource:
    """Reads scheduling counters from a procfs tree.

    The root defaults to /proc but can point anywhere (a container's
    relocated procfs, or a fake tree in tests).
    """

    def __init__(self, proc_root: Path | str = DEFAULT_PROC_ROOT) -> None:
        self.proc_root = Path(proc_root)

    def _read_first_line(self, path: Path) -> str | None:
        """Read the first line of a procfs record, None if the task is gone.

        comm is raw bytes truncated by the kernel, so undecodable bytes are
        replaced rather than rejected.
        """
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                line = f.readline()
        except (FileNotFoundError, ProcessLookupError, NotADirectoryError):
            return None
        return line or None

    def read_process_counters(self, pid: int) -> Counters | None:
        """Return cumulative counters for a process, None if it has exited.

        Raises:
            SchedstatFormatError: If the record exists but can't be parsed.
        """
        line = self._read_first_line(self.proc_root / str(pid) / "schedstat")
        if line is None:
            return None
        return parse_task_schedstat(line)

    def read_system_counters(self) -> SystemCounters:
        """Return counters summed across all CPUs.

        Raises:
            SchedstatUnavailable: If /proc/schedstat can't be opened.
            SchedstatFormatError: If a CPU line is malformed.
        """
        path = self.proc_root / "schedstat"
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise SchedstatUnavailable(f"Cannot read {path}: {e.strerror or e}") from e
        return parse_system_schedstat(text)

    def _read_stat_line(self, pid: int) -> str | None:
        # hidepid or a foreign task: indistinguishable from a missing pid here
        try:
            return self._read_first_line(self.proc_root / str(pid) / "stat")
        except PermissionError:
            return None

    def check_exists(self, pid: int) -> bool:
        """Check whether the process' basic stat record is readable."""
        return self._read_stat_line(pid) is not None

    def read_command(self, pid: int) -> str | None:
        """Return the process command name, None if unavailable."""
        line = self._read_stat_line(pid)
        if line is None:
            return None
        return parse_command(line)
