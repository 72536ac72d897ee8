# bgdeploy/services/identity.py
from __future__ import annotations

import json
import logging
import uuid
from typing import Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from bgdeploy.config import PublishSettings
from bgdeploy.errors import MissingAccountId, RemoteRequestFailed, RoleCreationMismatch
from bgdeploy.utils import aws_clients

logger = logging.getLogger(__name__)

BASIC_EXECUTION_POLICY_ARN = "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"

# Only the Lambda service may assume roles we create
LAMBDA_TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "lambda.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}


def generate_role_name(function_name: str) -> str:
    return f"{function_name}-role-{uuid.uuid4().hex[:8]}"


class IdentityProvisioner:
    """Finds or creates the execution role a brand-new function runs as."""

    # Initialize with IAM and STS clients, or build them from settings
    def __init__(
        self,
        *,
        function_role: Optional[str] = None,
        iam_client=None,
        sts_client=None,
        settings: Optional[PublishSettings] = None,
        session_factory: Callable[..., boto3.Session] = boto3.Session,
        wait_for_role: bool = True,
    ) -> None:
        settings = settings or PublishSettings()
        if iam_client is None or sts_client is None:
            session = aws_clients.make_session(settings, session_factory)
            iam_client = iam_client or aws_clients.iam_client(session, settings)
            sts_client = sts_client or aws_clients.sts_client(session, settings)
        self._iam = iam_client
        self._sts = sts_client
        self.function_role = function_role if function_role is not None else settings.function_role
        self._wait_for_role = wait_for_role

    def resolve_role(self, function_name: str) -> str:
        """Use the configured role if there is one, otherwise create ``<name>-role-<suffix>``."""
        if self.function_role:
            return self.function_role
        return self.create_role(generate_role_name(function_name))

    def create_role(self, role_name: str) -> str:
        logger.info(f"Creating execution role {role_name}")
        try:
            response = self._iam.create_role(
                RoleName=role_name,
                AssumeRolePolicyDocument=json.dumps(LAMBDA_TRUST_POLICY),
            )
        except (ClientError, BotoCoreError) as e:
            raise RemoteRequestFailed("create_role", e) from e

        created = response.get("Role", {}).get("RoleName")
        if created != role_name:
            raise RoleCreationMismatch(role_name, created)

        try:
            self._iam.attach_role_policy(RoleName=role_name, PolicyArn=BASIC_EXECUTION_POLICY_ARN)
        except (ClientError, BotoCoreError) as e:
            raise RemoteRequestFailed("attach_role_policy", e) from e

        if self._wait_for_role:
            try:
                self._iam.get_waiter("role_exists").wait(RoleName=role_name)
            except WaiterError as e:
                raise RemoteRequestFailed("role_exists", e) from e
        return role_name

    def validate(self, role: str) -> str:
        """
        Return a full role ARN. Bare names get the caller's account prefix:
        "my-role" -> "arn:aws:iam::<account>:role/my-role".
        """
        if role.startswith("arn:"):
            return role
        try:
            account_id = self._sts.get_caller_identity().get("Account")
        except (ClientError, BotoCoreError) as e:
            raise RemoteRequestFailed("get_caller_identity", e) from e
        if not account_id:
            raise MissingAccountId()
        return f"arn:aws:iam::{account_id}:role/{role}"
