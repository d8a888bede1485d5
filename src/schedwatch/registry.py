"""Tracked targets and their last-seen scheduling counters."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from schedwatch.schedstat import Counters, ProcSource, SchedwatchError

# Identifier of the whole-system pseudo-target
SYSTEM = "system"

DEFAULT_MAX_TARGETS = 32


class TooManyTargets(SchedwatchError, ValueError):
    """Raised when more targets are supplied than the registry can hold."""


@dataclass(slots=True)
class Target:
    """In-memory state for one monitored process (or the whole system).

    Totals are the counters as last read; the *_prev fields hold the
    previous read and start at zero, so the first delta is the full
    cumulative value.
    """

    identifier: int | str
    alive: bool = False
    command: str | None = None
    run_time_total: int = 0
    wait_time_total: int = 0
    timeslices_total: int | None = None
    run_time_prev: int = 0
    wait_time_prev: int = 0
    timeslices_prev: int | None = None

    @property
    def is_system(self) -> bool:
        return self.identifier == SYSTEM

    @property
    def delta_run_time(self) -> int:
        return self.run_time_total - self.run_time_prev

    @property
    def delta_wait_time(self) -> int:
        return self.wait_time_total - self.wait_time_prev

    @property
    def delta_timeslices(self) -> int | None:
        if self.timeslices_total is None or self.timeslices_prev is None:
            return None
        return self.timeslices_total - self.timeslices_prev

    def update(self, counters: Counters) -> None:
        """Shift the current totals into *_prev and store the new read."""
        self.run_time_prev, self.run_time_total = self.run_time_total, counters.run_time
        self.wait_time_prev, self.wait_time_total = self.wait_time_total, counters.wait_time
        if counters.timeslices is None:
            self.timeslices_prev = self.timeslices_total = None
        else:
            self.timeslices_prev = self.timeslices_total or 0
            self.timeslices_total = counters.timeslices

    def mark_dead(self) -> None:
        """Mark the target gone. Calling this again is a no-op."""
        self.alive = False


class Registry:
    """Ordered, fixed-capacity collection of tracked targets.

    Targets keep their insertion order for the lifetime of the registry,
    so every sampling cycle visits them in the same sequence. The
    whole-system pseudo-target, when present, sits beside the bounded
    list and doesn't count against the capacity.
    """

    def __init__(self, capacity: int = DEFAULT_MAX_TARGETS) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self.targets: list[Target] = []
        self.system: Target | None = None

    @classmethod
    def initialize(
        cls,
        identifiers: Iterable[int],
        source: ProcSource,
        *,
        capacity: int = DEFAULT_MAX_TARGETS,
        whole_system: bool = False,
    ) -> Registry:
        """Build a registry, probing each process for existence.

        Duplicates are tracked independently. Processes that don't exist
        are kept but start dead.

        Raises:
            TooManyTargets: If more identifiers than capacity are supplied.
        """
        ids = list(identifiers)
        if len(ids) > capacity:
            raise TooManyTargets(f"At most {capacity} targets can be tracked, got {len(ids)}")

        registry = cls(capacity)
        for pid in ids:
            alive = source.check_exists(pid)
            command = source.read_command(pid) if alive else None
            registry.targets.append(Target(identifier=pid, alive=alive, command=command))

        if whole_system:
            registry.system = Target(identifier=SYSTEM, alive=True)
        return registry

    def __len__(self) -> int:
        return len(self.targets)

    def __iter__(self) -> Iterator[Target]:
        return iter(self.targets)

    def live(self) -> list[Target]:
        """Targets still being sampled, in registry order."""
        return [t for t in self.targets if t.alive]

    def dead(self) -> list[Target]:
        return [t for t in self.targets if not t.alive]

    @property
    def all_dead(self) -> bool:
        return not any(t.alive for t in self.targets)
