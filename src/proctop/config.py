"""Configuration for proctop."""

from dataclasses import dataclass, field
from pathlib import Path

import tomlkit


@dataclass
class LoggingConfig:
    """Log file configuration."""

    level: str = "INFO"
    max_bytes: int = 1024 * 1024  # Rotate the log file at 1MB
    backup_count: int = 2  # Number of backup log files to keep


@dataclass
class DisplayConfig:
    """Process table display configuration."""

    name_max_width: int = 50  # Longer names are cut in the table


@dataclass
class Config:
    """Main configuration container."""

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)

    @property
    def config_path(self) -> Path:
        """Default config file location."""
        return Path.home() / ".config" / "proctop" / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "proctop"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "proctop.log"

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        The file is only ever read. A missing file gives the defaults.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path, encoding="utf-8") as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        logging_data = data.get("logging", {})
        display_data = data.get("display", {})
        for section, value in (("logging", logging_data), ("display", display_data)):
            if not isinstance(value, dict):
                raise ValueError(f"Invalid config file {path}: [{section}] must be a table")

        log_defaults = defaults.logging
        display_defaults = defaults.display

        return cls(
            logging=LoggingConfig(
                level=str(logging_data.get("level", log_defaults.level)).upper(),
                max_bytes=int(logging_data.get("max_bytes", log_defaults.max_bytes)),
                backup_count=int(logging_data.get("backup_count", log_defaults.backup_count)),
            ),
            display=DisplayConfig(
                name_max_width=int(
                    display_data.get("name_max_width", display_defaults.name_max_width)
                ),
            ),
        )
