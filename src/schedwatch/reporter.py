"""Human-readable output lines for sampled targets."""

from __future__ import annotations

from collections.abc import Callable

import click

from schedwatch.formatting import format_clock, format_counters, format_label
from schedwatch.registry import Target
from schedwatch.sampler import SampleResult


class Reporter:
    """Writes one line per sampled target per cycle to stdout.

    Default mode shows the per-interval deltas; verbose mode shows the
    absolute cumulative counters instead. Lifecycle notices (missing,
    exited, all exited) go to the same stream so the output reads as a
    single log of the run.
    """

    def __init__(
        self,
        verbose: bool = False,
        show_command: bool = True,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self.verbose = verbose
        self.show_command = show_command
        self._echo = echo

    def format(self, result: SampleResult) -> str:
        """Render a sample as "HH:MM:SS <label> run=<N>ns wait=<N>ns"."""
        label = format_label(result.identifier, result.command if self.show_command else None)
        if self.verbose:
            counters = format_counters(
                result.run_time_total, result.wait_time_total, result.timeslices_total
            )
        else:
            counters = format_counters(result.delta_run_time, result.delta_wait_time)
        return f"{format_clock(result.timestamp)} {label} {counters}"

    def report(self, result: SampleResult) -> None:
        self._echo(self.format(result))

    def target_missing(self, target: Target) -> None:
        """Startup notice for a process that doesn't exist."""
        self._echo(f"pid {target.identifier} does not exist")

    def target_exited(self, target: Target) -> None:
        self._echo(f"pid {target.identifier} has exited")

    def all_exited(self) -> None:
        self._echo("all processes have exited")
