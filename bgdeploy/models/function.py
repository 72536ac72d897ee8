# bgdeploy/models/function.py
from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from pathlib import Path
from typing import Any, Dict, Optional
import json

from bgdeploy.errors import ArchiveNotFound, MissingConfigField


# The zip produced by the packager; its file name decides the function name
@dataclass(frozen=True)
class DeployableArtifact:
    location: str
    function_name: str

    def read_bytes(self) -> bytes:
        """Load the archive contents, failing if the file is missing or empty."""
        path = Path(self.location)
        if not path.is_file():
            raise ArchiveNotFound(str(path))
        data = path.read_bytes()
        if not data:
            raise ArchiveNotFound(str(path))
        return data


# Subset of GetFunctionConfiguration / UpdateFunctionCode / PublishVersion output
@dataclass(frozen=True)
class FunctionConfiguration:
    function_name: Optional[str] = None
    revision_id: Optional[str] = None
    code_sha256: Optional[str] = None
    version: Optional[str] = None
    role: Optional[str] = None
    state: Optional[str] = None
    last_update_status: Optional[str] = None

    @classmethod
    def from_aws_response(cls, response: Dict[str, Any]) -> "FunctionConfiguration":
        return cls(
            function_name=response.get("FunctionName"),
            revision_id=response.get("RevisionId"),
            code_sha256=response.get("CodeSha256"),
            version=response.get("Version"),
            role=response.get("Role"),
            state=response.get("State"),
            last_update_status=response.get("LastUpdateStatus"),
        )

    def require(self, field: str, step: str) -> str:
        """Return ``field`` or raise MissingConfigField(field, step) if it is unset."""
        value = getattr(self, field, None)
        if not value:
            raise MissingConfigField(field, step)
        return value

    def with_version(self, version: Optional[str]) -> "FunctionConfiguration":
        return replace(self, version=version)

    def __str__(self) -> str:
        return json.dumps(asdict(self), indent=2)


# The client-visible pointer (e.g. "development") to one immutable version
@dataclass(frozen=True)
class AliasPointer:
    function_name: str
    alias_name: str
    target_version: str
    revision_id: Optional[str] = None
    alias_arn: Optional[str] = None

    @classmethod
    def from_aws_response(cls, function_name: str, response: Dict[str, Any]) -> "AliasPointer":
        return cls(
            function_name=function_name,
            alias_name=response.get("Name", ""),
            target_version=response.get("FunctionVersion", ""),
            revision_id=response.get("RevisionId"),
            alias_arn=response.get("AliasArn"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InvocationResult:
    function_error: Optional[str]
    payload: bytes = b""
    status_code: int = 200
    executed_version: Optional[str] = None

    @property
    def failed(self) -> bool:
        return bool(self.function_error)

    def payload_text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")


__all__ = ["DeployableArtifact", "FunctionConfiguration", "AliasPointer", "InvocationResult"]
