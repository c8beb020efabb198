"""Application configuration loaded from a YAML file."""

from __future__ import annotations

import argparse
import dataclasses
import os
from collections.abc import Mapping, Sequence
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "./merak-bin/config.yaml"


@dataclasses.dataclass
class AppConfig:
    """Settings of the scenario manager; unknown keys are kept in ``extra``."""

    use_syslog: bool = False
    log_level: str = "info"
    grpc_timeout: int = 0
    extra: dict[str, Any] = dataclasses.field(default_factory=dict)

    def effective_grpc_timeout(self) -> int:
        """Return the gRPC timeout in seconds, at least one."""
        if self.grpc_timeout <= 0:
            return 1
        return self.grpc_timeout


_current: AppConfig | None = None


def _from_mapping(data: Mapping[str, Any]) -> AppConfig:
    known = {f.name for f in dataclasses.fields(AppConfig)} - {"extra"}
    values = {key: data[key] for key in known if key in data}
    extra = {key: value for key, value in data.items() if key not in known}
    return AppConfig(**values, extra=extra)


def load_config(path: str | os.PathLike[str]) -> AppConfig:
    """Read the YAML file at ``path`` and make it the current configuration."""
    global _current
    with open(path, encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        raise ValueError(f"config file '{path}' is empty")
    if not isinstance(data, Mapping):
        raise ValueError(f"config file '{path}' must hold a mapping")
    _current = _from_mapping(data)
    return _current


def get_config() -> AppConfig | None:
    """Return the configuration loaded last, if any."""
    return _current


def validate_config_path(path: str | os.PathLike[str]) -> None:
    """Raise unless ``path`` names an existing regular file."""
    os.stat(path)
    if os.path.isdir(path):
        raise ValueError(f"'{path}' is a directory, not a file")


def parse_flags(argv: Sequence[str] | None = None) -> str:
    """Parse the ``-config`` option and return the validated path."""
    parser = argparse.ArgumentParser(description="Scenario manager")
    parser.add_argument(
        "-config",
        "--config",
        dest="config",
        default=DEFAULT_CONFIG_PATH,
        help="path to config file",
    )
    args, _ = parser.parse_known_args(argv)
    validate_config_path(args.config)
    return args.config