"""
Index Advisor Configuration
Thresholds, connection settings, and the environment loader shared by the
CLI, the agent, and the HTTP app.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Mapping, Optional

from framework.errors import InvalidConfiguration

ENV_PREFIX = "INDEX_ADVISOR_"

DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_SQLSERVER_PORT = 1433
DEFAULT_QUERY_TIMEOUT_SECONDS = 300
DEFAULT_SNAPSHOT_TIMEOUT_SECONDS = 600

# Report views, in the order the CLI prints them
REPORT_VIEWS = {
    "overview": "Full index usage and fragmentation overview",
    "unused_candidates": "Candidate unused or rarely used indexes (non-trivial writes, zero reads)",
    "action_needed": "Fragmented indexes with recommended REBUILD or REORGANIZE",
    "maintenance_commands": "Generated ALTER INDEX statements (review before executing)",
}


@dataclass(frozen=True)
class AdvisorThresholds:
    """Classification thresholds. Fragmentation values are percentages."""
    low_frag_threshold: float = 5.0     # under this: no action
    high_frag_threshold: float = 30.0   # at or above: REBUILD, between = REORGANIZE
    min_page_count: int = 1000          # ignore tiny indexes below this page count
    min_update_count: int = 100         # minimum updates to consider for "unused" candidates

    def __post_init__(self):
        for name in ("low_frag_threshold", "high_frag_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidConfiguration(f"{name} must be a number, got {value!r}", setting=name)
            if not 0.0 <= value <= 100.0:
                raise InvalidConfiguration(f"{name} must be between 0 and 100, got {value}", setting=name)
        for name in ("min_page_count", "min_update_count"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(f"{name} must be an integer, got {value!r}", setting=name)
            if value < 0:
                raise InvalidConfiguration(f"{name} must be non-negative, got {value}", setting=name)
        if self.low_frag_threshold > self.high_frag_threshold:
            raise InvalidConfiguration(
                f"low_frag_threshold ({self.low_frag_threshold}) must not exceed "
                f"high_frag_threshold ({self.high_frag_threshold})",
                setting="low_frag_threshold",
            )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AdvisorSettings:
    """Everything one advisor run needs: target database, thresholds, and how to connect."""
    target_database: str
    thresholds: AdvisorThresholds = field(default_factory=AdvisorThresholds)
    server: str = "localhost"
    port: int = DEFAULT_SQLSERVER_PORT
    odbc_driver: str = DEFAULT_ODBC_DRIVER
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    trusted_connection: bool = False
    encrypt: bool = True
    trust_server_certificate: bool = False
    query_timeout_seconds: int = DEFAULT_QUERY_TIMEOUT_SECONDS
    snapshot_timeout_seconds: int = DEFAULT_SNAPSHOT_TIMEOUT_SECONDS
    mock_mode: bool = False

    def __post_init__(self):
        if not isinstance(self.target_database, str) or not self.target_database.strip():
            raise InvalidConfiguration("target database is required", setting="target_database")
        if not isinstance(self.thresholds, AdvisorThresholds):
            raise InvalidConfiguration("thresholds must be an AdvisorThresholds value", setting="thresholds")
        for name in ("port", "query_timeout_seconds", "snapshot_timeout_seconds"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidConfiguration(f"{name} must be a positive integer, got {value!r}", setting=name)
        if self.snapshot_timeout_seconds < self.query_timeout_seconds:
            raise InvalidConfiguration(
                f"snapshot_timeout_seconds ({self.snapshot_timeout_seconds}) must not be shorter than "
                f"query_timeout_seconds ({self.query_timeout_seconds})",
                setting="snapshot_timeout_seconds",
            )
        if not self.mock_mode and not self.trusted_connection and not self.username:
            raise InvalidConfiguration(
                "either a username or trusted_connection is required", setting="username",
            )


# Environment variable name (without prefix) -> (settings field, parser)
_THRESHOLD_ENV = {
    "LOW_FRAG_THRESHOLD": ("low_frag_threshold", float),
    "HIGH_FRAG_THRESHOLD": ("high_frag_threshold", float),
    "MIN_PAGE_COUNT": ("min_page_count", int),
    "MIN_UPDATE_COUNT": ("min_update_count", int),
}


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


_SETTINGS_ENV = {
    "TARGET_DATABASE": ("target_database", str),
    "SQLSERVER_HOST": ("server", str),
    "SQLSERVER_PORT": ("port", int),
    "ODBC_DRIVER": ("odbc_driver", str),
    "SQLSERVER_USER": ("username", str),
    "SQLSERVER_PASSWORD": ("password", str),
    "TRUSTED_CONNECTION": ("trusted_connection", _parse_bool),
    "ENCRYPT": ("encrypt", _parse_bool),
    "TRUST_SERVER_CERTIFICATE": ("trust_server_certificate", _parse_bool),
    "QUERY_TIMEOUT_SECONDS": ("query_timeout_seconds", int),
    "SNAPSHOT_TIMEOUT_SECONDS": ("snapshot_timeout_seconds", int),
    "MOCK_MODE": ("mock_mode", _parse_bool),
}


def _read_env(env: Mapping[str, str], table: dict) -> dict:
    values = {}
    for suffix, (name, parser) in table.items():
        raw = env.get(ENV_PREFIX + suffix)
        if raw is None or raw == "":
            continue
        try:
            values[name] = parser(raw)
        except ValueError as e:
            raise InvalidConfiguration(
                f"{ENV_PREFIX}{suffix} has an invalid value: {e}", setting=name,
            ) from e
    return values


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides) -> AdvisorSettings:
    """
    Build AdvisorSettings from INDEX_ADVISOR_* environment variables.

    Keyword overrides (e.g. parsed CLI flags) win over the environment; None
    values are ignored so unset flags fall through. Threshold overrides use the
    AdvisorThresholds field names.
    """
    env = os.environ if env is None else env
    overrides = {k: v for k, v in overrides.items() if v is not None}

    threshold_values = _read_env(env, _THRESHOLD_ENV)
    for name in AdvisorThresholds.__dataclass_fields__:
        if name in overrides:
            threshold_values[name] = overrides.pop(name)

    setting_values = _read_env(env, _SETTINGS_ENV)
    setting_values.update(overrides)

    unknown = set(setting_values) - set(AdvisorSettings.__dataclass_fields__)
    if unknown:
        raise InvalidConfiguration(f"unknown settings: {', '.join(sorted(unknown))}")
    if "target_database" not in setting_values:
        raise InvalidConfiguration(
            f"target database is required ({ENV_PREFIX}TARGET_DATABASE or --database)",
            setting="target_database",
        )

    return AdvisorSettings(thresholds=AdvisorThresholds(**threshold_values), **setting_values)
