# bgdeploy/services/lambda_gateway.py
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from bgdeploy.config import PublishSettings
from bgdeploy.errors import RemoteNotFound, RemoteRequestFailed
from bgdeploy.models.function import AliasPointer, FunctionConfiguration, InvocationResult
from bgdeploy.utils import aws_clients

logger = logging.getLogger(__name__)

NOT_FOUND_CODE = "ResourceNotFoundException"


class LambdaGateway:
    """
    Reads and writes Lambda function configuration.

    Every botocore failure is wrapped in RemoteRequestFailed, except a missing
    function on fetch(), which raises RemoteNotFound so callers can branch on
    the type instead of the message.
    """

    # Initialize with an existing client, or build one from settings
    def __init__(
        self,
        lambda_client=None,
        *,
        settings: Optional[PublishSettings] = None,
        session_factory: Callable[..., boto3.Session] = boto3.Session,
        wait_for_updates: Optional[bool] = None,
    ) -> None:
        settings = settings or PublishSettings()
        if lambda_client is None:
            session = aws_clients.make_session(settings, session_factory)
            lambda_client = aws_clients.lambda_client(session, settings)
        self._lambda = lambda_client
        self._wait = settings.wait_for_updates if wait_for_updates is None else wait_for_updates

    def _call(self, operation: str, **kwargs) -> Dict[str, Any]:
        try:
            return getattr(self._lambda, operation)(**kwargs)
        except ClientError as e:
            logger.debug(f"{operation} rejected: {e.response.get('Error', {}).get('Code')}")
            raise RemoteRequestFailed(operation, e) from e
        except BotoCoreError as e:
            raise RemoteRequestFailed(operation, e) from e

    def _wait_for(self, waiter_name: str, function_name: str) -> None:
        if not self._wait:
            return
        logger.debug(f"Waiting on {waiter_name} for {function_name}")
        try:
            self._lambda.get_waiter(waiter_name).wait(
                FunctionName=function_name,
                WaiterConfig={"Delay": 2, "MaxAttempts": 150},
            )
        except WaiterError as e:
            raise RemoteRequestFailed(waiter_name, e) from e

    def fetch(self, function_name: str) -> FunctionConfiguration:
        try:
            response = self._lambda.get_function_configuration(FunctionName=function_name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == NOT_FOUND_CODE:
                raise RemoteNotFound(function_name) from e
            raise RemoteRequestFailed("get_function_configuration", e) from e
        except BotoCoreError as e:
            raise RemoteRequestFailed("get_function_configuration", e) from e
        return FunctionConfiguration.from_aws_response(response)

    def update_code(self, function_name: str, revision_id: str, zip_bytes: bytes) -> FunctionConfiguration:
        response = self._call(
            "update_function_code",
            FunctionName=function_name,
            ZipFile=zip_bytes,
            RevisionId=revision_id,
        )
        self._wait_for("function_updated_v2", function_name)
        return FunctionConfiguration.from_aws_response(response)

    def create(self, function_name: str, zip_bytes: bytes, role: str,
               handler: str, runtime: str) -> FunctionConfiguration:
        # Publish=True so version "1" exists for the default alias
        response = self._call(
            "create_function",
            FunctionName=function_name,
            Role=role,
            Handler=handler,
            Runtime=runtime,
            Code={"ZipFile": zip_bytes},
            Publish=True,
        )
        self._wait_for("function_active_v2", function_name)
        return FunctionConfiguration.from_aws_response(response)

    def publish_version(self, function_name: str, code_sha256: str) -> FunctionConfiguration:
        response = self._call(
            "publish_version",
            FunctionName=function_name,
            CodeSha256=code_sha256,
        )
        return FunctionConfiguration.from_aws_response(response)

    def create_alias(self, function_name: str, version: str, alias_name: str) -> AliasPointer:
        response = self._call(
            "create_alias",
            FunctionName=function_name,
            FunctionVersion=version,
            Name=alias_name,
        )
        return AliasPointer.from_aws_response(function_name, response)

    def update_alias(self, function_name: str, version: str, alias_name: str) -> AliasPointer:
        """Repoint an existing alias; raises RemoteNotFound when the alias does not exist yet."""
        try:
            response = self._lambda.update_alias(
                FunctionName=function_name,
                FunctionVersion=version,
                Name=alias_name,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == NOT_FOUND_CODE:
                raise RemoteNotFound(f"{function_name}:{alias_name}") from e
            raise RemoteRequestFailed("update_alias", e) from e
        except BotoCoreError as e:
            raise RemoteRequestFailed("update_alias", e) from e
        return AliasPointer.from_aws_response(function_name, response)

    def invoke(self, function_name: str, payload: bytes) -> InvocationResult:
        """Invoke synchronously; ``function_name`` may carry a ":version" qualifier."""
        response = self._call(
            "invoke",
            FunctionName=function_name,
            InvocationType="RequestResponse",
            Payload=payload,
        )
        body = response.get("Payload")
        data = body.read() if hasattr(body, "read") else (body or b"")
        return InvocationResult(
            function_error=response.get("FunctionError"),
            payload=data,
            status_code=response.get("StatusCode", 200),
            executed_version=response.get("ExecutedVersion"),
        )
