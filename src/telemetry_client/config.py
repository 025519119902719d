"""Configuration for the telemetry client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


REGIONS = ("US", "EU")


@dataclass(frozen=True)
class BackoffConfig:
    """Retry backoff configuration."""
    max_backoff_ms: int = 15_000
    backoff_unit_ms: int = 1_000
    max_retries: int = 10


@dataclass(frozen=True)
class SenderConfig:
    """
    HTTP sender configuration.

    Can be set via:
    - Constructor arguments
    - Environment variables (TELEMETRY_*)
    - Config file
    """
    api_key: str | None = field(
        default_factory=lambda: os.environ.get("TELEMETRY_API_KEY")
    )

    # US | EU, selects the default ingest endpoints
    region: str = field(
        default_factory=lambda: os.environ.get("TELEMETRY_REGION", "US")
    )

    # Per-kind URL overrides, e.g. {"metrics": "https://..."}
    endpoints: Mapping[str, str] = field(default_factory=dict)

    timeout_seconds: float = 30.0

    # Dump every outgoing payload at debug level
    audit_logging_enabled: bool = False

    # Appended to the User-Agent header
    secondary_user_agent: str | None = None

    # Send the key as X-License-Key instead of Api-Key
    use_license_key: bool = False

    def __post_init__(self):
        region = (self.region or "").upper()
        if region not in REGIONS:
            raise ValueError(f"Invalid region {self.region!r}: must be one of {', '.join(REGIONS)}")
        object.__setattr__(self, "region", region)
        object.__setattr__(self, "endpoints", MappingProxyType(dict(self.endpoints)))


@dataclass(frozen=True)
class ClientConfig:
    """Main configuration container."""
    sender: SenderConfig = field(default_factory=SenderConfig)
    backoff: BackoffConfig = field(default_factory=BackoffConfig)

    # Upper bound on items admitted but not yet finished
    max_in_flight_items: int = 1_000_000

    # Grace period for in-flight sends on shutdown
    shutdown_seconds: float = 3.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientConfig:
        """Create config from dictionary."""
        return cls(
            sender=SenderConfig(**(data.get("sender") or {})),
            backoff=BackoffConfig(**(data.get("backoff") or {})),
            max_in_flight_items=data.get("max_in_flight_items", 1_000_000),
            shutdown_seconds=data.get("shutdown_seconds", 3.0),
        )

    @classmethod
    def from_yaml(cls, path: str) -> ClientConfig:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> ClientConfig:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)
