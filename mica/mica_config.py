"""
Runtime configuration for the Mica script runner.

Settings come from keyword arguments, a mapping, or a YAML file. When no file
is given, `load_config()` reads the path in the MICA_CONFIG environment
variable, if set.
"""

import os
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

OVERFLOW_MODES = ("wrap", "error")


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""
    pass


@dataclass
class RunnerConfig:
    # Deepest chain of nested function calls before a recursion error.
    max_call_depth: int = 500
    # 'wrap' for two's-complement wrap-around, 'error' to fail the operation.
    integer_overflow: str = "wrap"
    # Treat parser diagnostics as a failed run instead of skipping statements.
    strict_parse: bool = False
    # Record statement-level runtime errors as stderr side effects.
    echo_errors: bool = True

    def __post_init__(self):
        if isinstance(self.max_call_depth, bool) or not isinstance(self.max_call_depth, int):
            raise ConfigError(f"max_call_depth must be an integer, got {self.max_call_depth!r}")
        if self.max_call_depth < 1:
            raise ConfigError(f"max_call_depth must be positive, got {self.max_call_depth}")
        if self.integer_overflow not in OVERFLOW_MODES:
            raise ConfigError(
                f"integer_overflow must be one of {', '.join(OVERFLOW_MODES)}, got {self.integer_overflow!r}"
            )
        for name in ("strict_parse", "echo_errors"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'RunnerConfig':
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_file(cls, path) -> 'RunnerConfig':
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigError(f"config file not found: {path}") from None
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError(f"config file {path} must contain a mapping")
        # Allow the settings to live under a top-level 'mica' key.
        if set(data) == {"mica"} and isinstance(data["mica"], Mapping):
            data = data["mica"]
        return cls.from_mapping(data)

    def to_yaml(self) -> str:
        return yaml.safe_dump(asdict(self), sort_keys=False)


def load_config(path=None) -> RunnerConfig:
    """Loads configuration from `path`, then $MICA_CONFIG, else defaults."""
    path = path or os.environ.get("MICA_CONFIG")
    if path:
        return RunnerConfig.from_file(path)
    return RunnerConfig()
