"""Centralized console logging with Rich formatting.

This module provides:
1. Icon vocabulary (Icon class namespace)
2. Level-based styling
3. Core log functions (log, info, warn, error)
4. Domain-specific helpers (probe_started, target_unreadable, etc.)
5. Structlog configuration (configure, get_structlog)

Console output goes to stderr with Rich markup, so stdout carries only the
sample lines. JSON file output via structlog remains separate
(machine-parseable, no colors).
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from schedwatch.config import Config

# Rich console for human-readable diagnostics (stderr keeps stdout clean)
_console = Console(stderr=True, highlight=False)


# ─────────────────────────────────────────────────────────────────────────────
# Icons
# ─────────────────────────────────────────────────────────────────────────────


class Icon:
    """Icon vocabulary for console output.

    Use via autocomplete: Icon.<TAB> to see all available icons.
    """

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    WATCH = "[cyan]◉[/]"
    SIGNAL = "⚡"


# ─────────────────────────────────────────────────────────────────────────────
# Level Styles
# ─────────────────────────────────────────────────────────────────────────────

_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}", soft_wrap=True)


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


# ─────────────────────────────────────────────────────────────────────────────
# Domain Helpers
# ─────────────────────────────────────────────────────────────────────────────


def probe_started(mode: str, target_count: int, interval: int) -> None:
    """Log probe startup."""
    if mode == "system":
        what = "whole system"
    else:
        noun = "process" if target_count == 1 else "processes"
        what = f"[cyan]{target_count}[/] {noun}"
    info(f"Watching {what} every [cyan]{interval}s[/]", Icon.WATCH)


def target_unreadable(pid: int | str, error_msg: str) -> None:
    """Log a target whose schedstat record couldn't be parsed."""
    warn(f"pid {pid} schedstat unreadable: {escape(error_msg)}")


def schedstat_version_unknown(version: int) -> None:
    """Log an unrecognized /proc/schedstat layout."""
    warn(f"Unknown schedstat version [cyan]{version}[/], field layout may differ")


def source_unavailable(error_msg: str) -> None:
    """Log missing /proc/schedstat."""
    error(f"Scheduler statistics unavailable: {escape(error_msg)}", Icon.FAIL)


def config_invalid(error_msg: str) -> None:
    """Log config file load failure."""
    error(f"Invalid config: {escape(error_msg)}", Icon.FAIL)


def config_created(path: str) -> None:
    """Log config file created."""
    info(f"Created config at [cyan]{escape(path)}[/]", Icon.OK)


def interrupted() -> None:
    """Log probe interrupted by the user."""
    info("Interrupted", Icon.SIGNAL)


# ─────────────────────────────────────────────────────────────────────────────
# Structlog Configuration
# ─────────────────────────────────────────────────────────────────────────────


def _add_source(source: str) -> structlog.types.Processor:
    """Create a processor that adds a source field to log events."""

    def processor(
        logger: structlog.types.WrappedLogger,
        method_name: str,
        event_dict: structlog.types.EventDict,
    ) -> structlog.types.EventDict:
        event_dict["source"] = source
        return event_dict

    return processor


def configure(config: Config) -> None:
    """Configure structlog to write JSON Lines to the rotating probe log.

    Uses local time to match the HH:MM:SS stamps on sample lines. With
    config.system.log_file disabled, events are filtered out entirely.

    Args:
        config: Application config with paths
    """
    stdlib_root = logging.getLogger()
    stdlib_root.handlers.clear()

    if config.system.log_file:
        # Ensure state directory exists for log file
        config.state_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            config.log_path,
            maxBytes=config.system.log_max_bytes,
            backupCount=config.system.log_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.contextvars.merge_contextvars,
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                    _add_source("probe"),
                    structlog.processors.format_exc_info,
                ],
            )
        )
        stdlib_root.addHandler(file_handler)
        stdlib_root.setLevel(logging.INFO)
    else:
        stdlib_root.addHandler(logging.NullHandler())
        stdlib_root.setLevel(logging.CRITICAL + 1)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            _add_source("probe"),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_structlog() -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Returns a logger for structured JSON file output. Use this for
    machine-parseable events that should go to the log file.

    For human-readable console output, use the log/info/warn/error
    functions or domain helpers instead.
    """
    return structlog.get_logger()
