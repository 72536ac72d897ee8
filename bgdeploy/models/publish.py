# bgdeploy/models/publish.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from bgdeploy.models.function import AliasPointer


class PublishState(Enum):
    START = "start"
    NAME_RESOLVED = "name_resolved"
    CONFIG_FETCHED = "config_fetched"
    UPDATING = "updating"
    CREATING = "creating"
    VERSION_PUBLISHED = "version_published"
    VERIFIED = "verified"
    ALIAS_SWITCHED = "alias_switched"
    FAILED = "failed"


# What to send to the new version and how to judge its answer
@dataclass
class InvocationTask:
    payload: str = ""
    # Called with the raw response bytes; returning False blocks the alias switch
    verify_response: Optional[Callable[[bytes], bool]] = None
    # Runs right before invoking, e.g. to seed a datastore the function reads
    pre_verify_action: Optional[Callable[[], None]] = None


@dataclass
class PublishOutcome:
    """Result of one artifact's run through the publish state machine.

    ``state`` is ALIAS_SWITCHED or FAILED. ``reached`` is the last state the
    run got to, so a failed outcome tells you which step broke.
    """
    artifact: str
    state: PublishState
    reached: Optional[PublishState] = None
    alias: Optional[AliasPointer] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.alias is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact": self.artifact,
            "state": self.state.value,
            "reached": self.reached.value if self.reached else None,
            "alias": self.alias.to_dict() if self.alias else None,
            "error": f"{type(self.error).__name__}: {self.error}" if self.error else None,
        }


__all__ = ["PublishState", "InvocationTask", "PublishOutcome"]
