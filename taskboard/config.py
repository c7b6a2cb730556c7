# Task board configuration
# Override paths and server settings via taskboard.yaml, environment or CLI args.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError

CONFIG_PATH = Path.home() / ".config" / "taskboard" / "taskboard.yaml"


@dataclass
class Config:
    """Runtime configuration for the task board CLI and server."""

    # Storage
    db_path: str = "~/.local/share/taskboard/taskboard.db"

    # HTTP API
    host: str = "127.0.0.1"
    port: int = 7788

    # Logging
    log_level: str = "WARNING"

    def resolve_paths(self):
        """Expand ~ in the database path."""
        self.db_path = str(Path(self.db_path).expanduser())

    def apply_env(self):
        """Environment variables win over the config file."""
        if os.environ.get("TASKBOARD_DB"):
            self.db_path = os.environ["TASKBOARD_DB"]
        if os.environ.get("TASKBOARD_LOG_LEVEL"):
            self.log_level = os.environ["TASKBOARD_LOG_LEVEL"]

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        if path is None:
            path = os.environ.get("TASKBOARD_CONFIG")
        cfg_path = Path(path).expanduser() if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        else:
            cfg = cls()
        cfg.apply_env()
        cfg.resolve_paths()
        return cfg
