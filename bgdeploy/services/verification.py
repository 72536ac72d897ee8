# bgdeploy/services/verification.py
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from bgdeploy.config import DEFAULT_SETTLE_DELAY
from bgdeploy.errors import EmptyPayloadFile, InvocationFailed, RemoteRequestFailed, VerificationFailed
from bgdeploy.models.function import FunctionConfiguration
from bgdeploy.models.publish import InvocationTask

logger = logging.getLogger(__name__)

FILE_PREFIX = "file://"


def load_payload(payload: str) -> bytes:
    """
    Turn a CLI payload into request bytes. "file://path" reads the file,
    anything else is sent as-is. An empty string only checks for startup errors.
    """
    if payload.startswith(FILE_PREFIX):
        path = Path(payload[len(FILE_PREFIX):])
        data = path.read_bytes() if path.is_file() else b""
        if not data:
            raise EmptyPayloadFile(str(path))
        return data
    return payload.encode("utf-8")


class VerificationGate:
    """
    Invokes a freshly published version and decides whether it may receive
    traffic. A version passes when the invocation reports no function error
    and the task's verify_response (if any) accepts the response bytes.
    """

    def __init__(
        self,
        gateway,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        attempts: int = 1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._gateway = gateway
        self.settle_delay = settle_delay
        self.attempts = max(1, attempts)
        self._sleep = sleep

    def invoke(self, function: str, payload: str = "") -> bytes:
        logger.debug(f"Invoking Lambda: {function}. Payload: {payload}")
        result = self._gateway.invoke(function, load_payload(payload))
        if result.failed:
            raise InvocationFailed(function, result.payload_text())
        return result.payload

    def verify(self, configuration: FunctionConfiguration,
               task: Optional[InvocationTask] = None) -> FunctionConfiguration:
        function_name = configuration.require("function_name", "verify")
        version = configuration.require("version", "verify")
        task = task or InvocationTask()
        qualified = f"{function_name}:{version}"

        for attempt in range(1, self.attempts + 1):
            # the new version can take a moment to become invokable
            self._sleep(self.settle_delay)
            try:
                self._check(qualified, task)
                break
            except (InvocationFailed, RemoteRequestFailed) as e:
                if attempt >= self.attempts:
                    raise
                logger.warning(f"Verify attempt {attempt}/{self.attempts} for {qualified} failed: {e}")

        logger.debug(f"Verified {qualified}")
        return configuration

    def _check(self, qualified: str, task: InvocationTask) -> None:
        if task.pre_verify_action is not None:
            task.pre_verify_action()
        response = self.invoke(qualified, task.payload)
        if task.verify_response is not None and not task.verify_response(response):
            raise VerificationFailed(qualified)
