"""Per-cycle sampling: read, update, compute deltas."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import structlog

from schedwatch import logging as console
from schedwatch.registry import Registry, Target
from schedwatch.schedstat import (
    SUPPORTED_VERSIONS,
    ProcSource,
    SchedstatFormatError,
)

if TYPE_CHECKING:
    from schedwatch.reporter import Reporter

log = structlog.get_logger()


@dataclass(slots=True, frozen=True)
class SampleResult:
    """One target's counters for one cycle. Not persisted."""

    identifier: int | str
    delta_run_time: int
    delta_wait_time: int
    timestamp: datetime
    run_time_total: int
    wait_time_total: int
    command: str | None = None
    timeslices_total: int | None = None
    delta_timeslices: int | None = None

    @classmethod
    def from_target(cls, target: Target, timestamp: datetime) -> SampleResult:
        return cls(
            identifier=target.identifier,
            delta_run_time=target.delta_run_time,
            delta_wait_time=target.delta_wait_time,
            timestamp=timestamp,
            run_time_total=target.run_time_total,
            wait_time_total=target.wait_time_total,
            command=target.command,
            timeslices_total=target.timeslices_total,
            delta_timeslices=target.delta_timeslices,
        )


class Sampler:
    """Advances every live target by one counter read."""

    def __init__(
        self,
        source: ProcSource,
        reporter: Reporter,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.source = source
        self.reporter = reporter
        self._clock = clock
        self._version_checked = False

    def sample_targets(self, registry: Registry) -> int:
        """Sample all live targets once, in registry order.

        Targets whose record has gone away are marked dead and reported as
        exited; they aren't counted.

        Returns:
            Number of targets successfully sampled this cycle.
        """
        processed = 0
        for target in registry.live():
            try:
                counters = self.source.read_process_counters(target.identifier)
            except (SchedstatFormatError, PermissionError) as e:
                log.warning("target_unreadable", pid=target.identifier, error=str(e))
                console.target_unreadable(target.identifier, str(e))
                counters = None

            if counters is None:
                target.mark_dead()
                log.info("target_exited", pid=target.identifier, command=target.command)
                self.reporter.target_exited(target)
                continue

            target.update(counters)
            self.reporter.report(SampleResult.from_target(target, self._clock()))
            processed += 1
        return processed

    def sample_system(self, registry: Registry) -> SampleResult | None:
        """Sample the whole-system aggregate, if the registry tracks it.

        Raises:
            SchedstatUnavailable: If /proc/schedstat can't be read.
            SchedstatFormatError: If a CPU line is malformed.
        """
        target = registry.system
        if target is None:
            return None

        system = self.source.read_system_counters()
        if not self._version_checked:
            self._version_checked = True
            if system.version is not None and system.version not in SUPPORTED_VERSIONS:
                log.warning("schedstat_version_unknown", version=system.version)
                console.schedstat_version_unknown(system.version)

        target.update(system.counters)
        result = SampleResult.from_target(target, self._clock())
        self.reporter.report(result)
        return result
