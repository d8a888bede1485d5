"""Formatting utilities for probe output lines."""

from datetime import datetime


def format_clock(when: datetime | None = None) -> str:
    """Format a wall-clock time as HH:MM:SS in local time.

    Args:
        when: Time to format (defaults to datetime.now())
    """
    if when is None:
        when = datetime.now()
    return when.strftime("%H:%M:%S")


def format_label(identifier: int | str, command: str | None = None) -> str:
    """Format a target label.

    Returns:
        - With a command: "1234 (bash)"
        - Without: "1234"
        - Whole system: "system"
    """
    if command:
        return f"{identifier} ({command})"
    return str(identifier)


def format_counters(run_time: int, wait_time: int, timeslices: int | None = None) -> str:
    """Format a run/wait pair as "run=<N>ns wait=<N>ns".

    The timeslice count is appended as "slices=<N>" when given.
    """
    text = f"run={run_time}ns wait={wait_time}ns"
    if timeslices is not None:
        text += f" slices={timeslices}"
    return text
