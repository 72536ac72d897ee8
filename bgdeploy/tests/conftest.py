# bgdeploy/tests/conftest.py
from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional, Tuple

import pytest

from bgdeploy.config import DEFAULT_ALIAS
from bgdeploy.errors import RemoteNotFound
from bgdeploy.models.function import AliasPointer, FunctionConfiguration, InvocationResult


# -------- fakes --------

class FakeGateway:
    """In-memory Lambda: records every call in order, versions count up from 1."""

    def __init__(self, calls: Optional[List[Tuple[Any, ...]]] = None):
        self.calls = calls if calls is not None else []
        self.functions: Dict[str, FunctionConfiguration] = {}
        self.invoke_results: Dict[str, InvocationResult] = {}
        self.errors: Dict[Tuple[str, str], Exception] = {}
        self._versions: Dict[str, int] = {}
        self.aliases: Dict[str, Dict[str, str]] = {}
        self._lock = threading.Lock()

    def add_function(self, name: str, revision_id: str = "1234", version: int = 0) -> None:
        self.functions[name] = FunctionConfiguration(
            function_name=name, revision_id=revision_id, code_sha256="old-sha", version="$LATEST"
        )
        self._versions[name] = version
        self.aliases[name] = {DEFAULT_ALIAS: "1"}

    def fail(self, operation: str, name: str, error: Exception) -> None:
        self.errors[(operation, name)] = error

    def _record(self, operation: str, name: str, *args) -> None:
        with self._lock:
            self.calls.append((operation, name) + args)
        error = self.errors.get((operation, name.split(":")[0]))
        if error is not None:
            raise error

    def ops(self, name: Optional[str] = None) -> List[str]:
        return [c[0] for c in self.calls if name is None or c[1].split(":")[0] == name]

    def fetch(self, name):
        self._record("fetch", name)
        if name not in self.functions:
            raise RemoteNotFound(name)
        return self.functions[name]

    def update_code(self, name, revision_id, zip_bytes):
        self._record("update_code", name, revision_id)
        return FunctionConfiguration(
            function_name=name, revision_id="after-update", code_sha256=f"sha-{len(zip_bytes)}",
            version="$LATEST",
        )

    def create(self, name, zip_bytes, role, handler, runtime):
        self._record("create", name, role, handler, runtime)
        self._versions[name] = 1
        self.functions[name] = FunctionConfiguration(
            function_name=name, revision_id="created", code_sha256=f"sha-{len(zip_bytes)}",
            version="1", role=role,
        )
        return self.functions[name]

    def publish_version(self, name, code_sha256):
        self._record("publish_version", name, code_sha256)
        with self._lock:
            # unchanged code after create keeps version 1, like the real API
            if self.functions.get(name) and self.functions[name].version == "1":
                version = 1
                self.functions[name] = self.functions[name].with_version("$LATEST")
            else:
                version = self._versions.get(name, 0) + 1
            self._versions[name] = version
        return FunctionConfiguration(
            function_name=name, revision_id="published", code_sha256=code_sha256, version=str(version)
        )

    def create_alias(self, name, version, alias_name):
        self._record("create_alias", name, version, alias_name)
        with self._lock:
            self.aliases.setdefault(name, {})[alias_name] = version
        return AliasPointer(function_name=name, alias_name=alias_name, target_version=version)

    def update_alias(self, name, version, alias_name):
        self._record("update_alias", name, version, alias_name)
        with self._lock:
            existing = self.aliases.get(name, {})
            if alias_name not in existing:
                raise RemoteNotFound(f"{name}:{alias_name}")
            existing[alias_name] = version
        return AliasPointer(function_name=name, alias_name=alias_name, target_version=version,
                            revision_id="alias-rev")

    def invoke(self, name, payload):
        self._record("invoke", name, payload)
        return self.invoke_results.get(name) or self.invoke_results.get(
            name.split(":")[0], InvocationResult(function_error=None, payload=b'{"ok": true}')
        )


class FakeIdentity:
    def __init__(self, calls: List[Tuple[Any, ...]], account_id: str = "123456789012"):
        self.calls = calls
        self.account_id = account_id

    def resolve_role(self, function_name):
        self.calls.append(("resolve_role", function_name))
        return f"{function_name}-role-abcd1234"

    def validate(self, role):
        self.calls.append(("validate", role))
        if role.startswith("arn:"):
            return role
        return f"arn:aws:iam::{self.account_id}:role/{role}"


# -------- fixtures --------

@pytest.fixture
def calls():
    return []


@pytest.fixture
def gateway(calls):
    return FakeGateway(calls)


@pytest.fixture
def identity(calls):
    return FakeIdentity(calls)


@pytest.fixture
def make_archive(tmp_path):
    def _make(name: str, content: bytes = b"PK\x03\x04 fake zip") -> str:
        path = tmp_path / name
        path.write_bytes(content)
        return str(path)
    return _make
