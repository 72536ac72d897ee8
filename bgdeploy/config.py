# bgdeploy/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from bgdeploy.errors import InvalidSetting

DEFAULT_ALIAS = "development"
DEFAULT_HANDLER = "main"  # ignored by custom runtimes, but CreateFunction requires one
DEFAULT_RUNTIME = "provided.al2"
DEFAULT_SETTLE_DELAY = 0.25


def _region() -> str:
    return os.environ.get("AWS_REGION") or os.environ.get("AWS_DEFAULT_REGION") or "us-east-1"


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidSetting(name, raw) from e


@dataclass(frozen=True)
class PublishSettings:
    alias: str = DEFAULT_ALIAS
    function_role: Optional[str] = None
    settle_delay: float = DEFAULT_SETTLE_DELAY  # seconds
    verify_attempts: int = 1
    max_workers: int = 4
    handler: str = DEFAULT_HANDLER
    runtime: str = DEFAULT_RUNTIME
    profile: Optional[str] = None
    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    wait_for_updates: bool = True
    read_timeout: int = 300

    @classmethod
    def from_env(cls) -> "PublishSettings":
        """Build settings from BGDEPLOY_* variables (plus the usual AWS region vars)."""
        return cls(
            alias=os.environ.get("BGDEPLOY_ALIAS", DEFAULT_ALIAS),
            function_role=os.environ.get("BGDEPLOY_FUNCTION_ROLE") or None,
            settle_delay=_int_env("BGDEPLOY_SETTLE_DELAY_MS", int(DEFAULT_SETTLE_DELAY * 1000)) / 1000,
            verify_attempts=_int_env("BGDEPLOY_VERIFY_ATTEMPTS", 1),
            max_workers=_int_env("BGDEPLOY_MAX_WORKERS", 4),
            handler=os.environ.get("BGDEPLOY_HANDLER", DEFAULT_HANDLER),
            runtime=os.environ.get("BGDEPLOY_RUNTIME", DEFAULT_RUNTIME),
            profile=os.environ.get("AWS_PROFILE") or None,
            region=_region(),
            endpoint_url=os.environ.get("AWS_ENDPOINT_URL_LAMBDA") or None,
            wait_for_updates=os.environ.get("BGDEPLOY_WAIT_FOR_UPDATES", "true").lower() == "true",
            read_timeout=_int_env("BGDEPLOY_READ_TIMEOUT", 300),
        )

    def override(self, **kwargs) -> "PublishSettings":
        """Return a copy with every non-None keyword applied (CLI flags win over env)."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        return replace(self, **changes)
