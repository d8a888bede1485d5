"""CLI commands for schedwatch."""

from pathlib import Path

import click
import structlog

from schedwatch import __version__
from schedwatch import logging as console

log = structlog.get_logger()


class PidList(click.ParamType):
    """Comma-separated list of positive process ids."""

    name = "pid[,pid...]"

    def convert(self, value, param, ctx) -> list[int]:
        if isinstance(value, list):
            return value

        pids = []
        for part in str(value).split(","):
            part = part.strip()
            if not (part.isascii() and part.isdigit()) or int(part) == 0:
                self.fail(f"{part!r} is not a valid process id", param, ctx)
            pids.append(int(part))
        return pids


PID_LIST = PidList()


def _load_config(path: Path | None):
    from schedwatch.config import Config

    try:
        return Config.load(path)
    except ValueError as e:
        console.config_invalid(str(e))
        raise SystemExit(1) from e


@click.group(invoke_without_command=True)
@click.option("-p", "--pids", type=PID_LIST, help="Comma-separated process ids to watch.")
@click.option(
    "-a", "--all", "whole_system", is_flag=True, help="Report the aggregate across all CPUs."
)
@click.option(
    "-s",
    "--sleep",
    "interval",
    type=click.IntRange(min=1),
    default=None,
    help="Seconds between samples (default 1).",
)
@click.option(
    "-v", "--verbose", is_flag=True, help="Print cumulative counters instead of deltas."
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Alternate config file.",
)
@click.version_option(version=__version__, prog_name="schedwatch")
@click.pass_context
def main(
    ctx,
    pids: list[int] | None,
    whole_system: bool,
    interval: int | None,
    verbose: bool,
    config_path: Path | None,
) -> None:
    """Watch CPU run time and run-queue wait time of processes.

    Use -p to follow specific processes until they all exit, or -a to
    follow the whole machine until interrupted.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    # A subcommand (e.g. "config show") handles everything itself
    if ctx.invoked_subcommand is not None:
        return

    if pids and whole_system:
        raise click.UsageError("-a and -p are mutually exclusive.")
    if not pids and not whole_system:
        raise click.UsageError("One of -p PIDS or -a is required.")

    config = _load_config(config_path)
    watch(
        config,
        pids=pids or [],
        whole_system=whole_system,
        interval=interval or config.sampling.interval,
        verbose=verbose or config.output.verbose,
    )


def watch(config, *, pids: list[int], whole_system: bool, interval: int, verbose: bool) -> None:
    """Build the registry and run the probe until it finishes.

    Exits with status 1 if whole-system counters are unavailable or
    malformed and 130 on Ctrl-C. Normal completion returns (status 0).
    """
    from schedwatch.probe import Probe
    from schedwatch.registry import Registry, TooManyTargets
    from schedwatch.reporter import Reporter
    from schedwatch.sampler import Sampler
    from schedwatch.schedstat import ProcSource, SchedwatchError

    source = ProcSource(config.system.proc_root)
    try:
        registry = Registry.initialize(
            pids,
            source,
            capacity=config.sampling.max_targets,
            whole_system=whole_system,
        )
    except TooManyTargets as e:
        raise click.UsageError(str(e)) from e

    console.configure(config)

    reporter = Reporter(verbose=verbose, show_command=config.output.show_command)
    sampler = Sampler(source, reporter)
    probe = Probe(registry, sampler, reporter, interval=interval)

    console.probe_started("system" if whole_system else "pids", len(registry), interval)
    try:
        probe.run()
    except SchedwatchError as e:
        log.error("system_source_unavailable", error=str(e))
        console.source_unavailable(str(e))
        raise SystemExit(1) from e
    except KeyboardInterrupt:
        log.info("probe_interrupted", cycles=probe.stats.cycles)
        console.interrupted()
        raise SystemExit(130) from None


@main.group()
def config() -> None:
    """Manage configuration."""


@config.command("show")
@click.pass_context
def config_show(ctx) -> None:
    """Display current configuration."""
    cfg = _load_config(ctx.obj["config_path"])
    path = ctx.obj["config_path"] or cfg.config_path

    click.echo(f"Config file: {path}")
    click.echo(f"Exists: {path.exists()}")
    click.echo()
    click.echo("[sampling]")
    click.echo(f"  interval = {cfg.sampling.interval}")
    click.echo(f"  max_targets = {cfg.sampling.max_targets}")
    click.echo()
    click.echo("[output]")
    click.echo(f"  verbose = {str(cfg.output.verbose).lower()}")
    click.echo(f"  show_command = {str(cfg.output.show_command).lower()}")
    click.echo()
    click.echo("[system]")
    click.echo(f"  proc_root = {cfg.system.proc_root}")
    click.echo(f"  log_file = {str(cfg.system.log_file).lower()}")
    click.echo(f"  log_path = {cfg.log_path}")


@config.command("edit")
@click.pass_context
def config_edit(ctx) -> None:
    """Open config file in editor."""
    import os
    import subprocess

    cfg = _load_config(ctx.obj["config_path"])
    path = ctx.obj["config_path"] or cfg.config_path

    # Create config if it doesn't exist
    if not path.exists():
        cfg.save(path)
        console.config_created(str(path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
@click.pass_context
def config_reset(ctx) -> None:
    """Reset configuration to defaults."""
    from schedwatch.config import Config

    cfg = Config()
    path = ctx.obj["config_path"] or cfg.config_path
    cfg.save(path)
    click.echo(f"Config reset to defaults at {path}")


if __name__ == "__main__":
    main()
