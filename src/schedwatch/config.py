"""Configuration system for schedwatch."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

from schedwatch.registry import DEFAULT_MAX_TARGETS
from schedwatch.schedstat import DEFAULT_PROC_ROOT


@dataclass
class SamplingConfig:
    """Sampling loop configuration."""

    interval: int = 1  # Whole seconds between cycles
    max_targets: int = DEFAULT_MAX_TARGETS  # Most pids accepted by -p


@dataclass
class OutputConfig:
    """Output line configuration."""

    verbose: bool = False  # Absolute counters instead of deltas
    show_command: bool = True  # Label lines "1234 (bash)" rather than "1234"


@dataclass
class SystemConfig:
    """Host and log file configuration."""

    proc_root: str = str(DEFAULT_PROC_ROOT)  # Where procfs is mounted
    # JSON log file
    log_file: bool = True  # Write structured events to the state dir
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    system: SystemConfig = field(default_factory=SystemConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "schedwatch"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs and other expendable persistent state."""
        return Path.home() / ".local" / "state" / "schedwatch"

    @property
    def log_path(self) -> Path:
        """Probe log path.

        Logs are expendable persistent state, so they go in XDG_STATE_HOME.
        """
        return self.state_dir / "probe.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("sampling", "output", "system"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() of an empty file are identical.

        Raises:
            ValueError: If the file can't be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            sampling=_load_sampling_config(data.get("sampling", {})),
            output=_load_output_config(data.get("output", {})),
            system=_load_system_config(data.get("system", {})),
        )


def _require_int(name: str, value: object, minimum: int) -> int:
    # bool is an int subclass; "interval = true" is a typo, not 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return int(value)


def _require_bool(name: str, value: object) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return bool(value)


def _load_sampling_config(data: dict) -> SamplingConfig:
    """Load sampling config from TOML data, using dataclass defaults for missing fields."""
    d = SamplingConfig()
    return SamplingConfig(
        interval=_require_int("sampling.interval", data.get("interval", d.interval), 1),
        max_targets=_require_int(
            "sampling.max_targets", data.get("max_targets", d.max_targets), 1
        ),
    )


def _load_output_config(data: dict) -> OutputConfig:
    """Load output config from TOML data."""
    d = OutputConfig()
    return OutputConfig(
        verbose=_require_bool("output.verbose", data.get("verbose", d.verbose)),
        show_command=_require_bool(
            "output.show_command", data.get("show_command", d.show_command)
        ),
    )


def _load_system_config(data: dict) -> SystemConfig:
    """Load system config from TOML data."""
    d = SystemConfig()

    proc_root = data.get("proc_root", d.proc_root)
    if not isinstance(proc_root, str) or not proc_root:
        raise ValueError(f"system.proc_root must be a non-empty path, got {proc_root!r}")

    return SystemConfig(
        proc_root=str(proc_root),
        log_file=_require_bool("system.log_file", data.get("log_file", d.log_file)),
        log_max_bytes=_require_int(
            "system.log_max_bytes", data.get("log_max_bytes", d.log_max_bytes), 1024
        ),
        log_backup_count=_require_int(
            "system.log_backup_count", data.get("log_backup_count", d.log_backup_count), 0
        ),
    )
