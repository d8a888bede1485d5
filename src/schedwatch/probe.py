"""Driver loop: repeat sampling passes until every target has exited."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog

from schedwatch.registry import Registry
from schedwatch.reporter import Reporter
from schedwatch.sampler import Sampler

log = structlog.get_logger()


class ProbeState(Enum):
    """Driver loop states. DONE is terminal."""

    RUNNING = "running"
    DONE = "done"


@dataclass
class ProbeStats:
    """Runtime counters for the probe."""

    cycles: int = 0
    samples: int = 0
    exited: int = 0


class Probe:
    """Orchestrates sampling cycles at a fixed interval.

    Each cycle:
    1. Sample every live target (Sampler.sample_targets)
    2. In whole-system mode, sample the all-CPU aggregate afterwards
    3. In per-target mode, stop once a cycle sampled nothing
    4. Sleep for the interval

    Whole-system mode never reaches DONE by itself; it runs until the
    process is interrupted.
    """

    def __init__(
        self,
        registry: Registry,
        sampler: Sampler,
        reporter: Reporter,
        interval: int = 1,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.registry = registry
        self.sampler = sampler
        self.reporter = reporter
        self.interval = interval
        self.state = ProbeState.RUNNING
        self.stats = ProbeStats()
        self._sleep = sleep or time.sleep

    @property
    def whole_system(self) -> bool:
        return self.registry.system is not None

    def announce_missing(self) -> None:
        """Report targets that were already gone at startup, once each."""
        for target in self.registry.dead():
            log.info("target_missing", pid=target.identifier)
            self.reporter.target_missing(target)

    def step(self) -> ProbeState:
        """Run one cycle (without the trailing sleep) and return the new state.

        Raises:
            SchedstatUnavailable: If whole-system counters can't be read.
        """
        if self.state is ProbeState.DONE:
            return self.state

        live_before = len(self.registry.live())
        processed = self.sampler.sample_targets(self.registry)
        self.stats.cycles += 1
        self.stats.samples += processed
        self.stats.exited += live_before - processed

        if self.whole_system:
            self.sampler.sample_system(self.registry)
        elif processed == 0:
            self.state = ProbeState.DONE
            log.info(
                "all_targets_exited",
                cycles=self.stats.cycles,
                samples=self.stats.samples,
            )
            self.reporter.all_exited()
        return self.state

    def run(self) -> None:
        """Loop until DONE. Returns normally on completion.

        Raises:
            SchedstatUnavailable: If whole-system counters can't be read.
        """
        log.info(
            "probe_started",
            mode="system" if self.whole_system else "pids",
            targets=[t.identifier for t in self.registry],
            interval=self.interval,
        )
        self.announce_missing()

        while self.step() is ProbeState.RUNNING:
            self._sleep(self.interval)
