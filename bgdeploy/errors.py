# bgdeploy/errors.py
from __future__ import annotations

from typing import List, Optional


class DeployError(RuntimeError):
    """Base class for every failure raised while publishing a function."""


class NameResolutionError(DeployError):
    def __init__(self, location: str):
        self.location = location
        super().__init__(
            f"Invalid archive name: {location}. It should be in the format: function-name.zip"
        )


class ArchiveNotFound(DeployError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"The archive at path: {path} could not be found or is empty.")


class MissingConfigField(DeployError):
    def __init__(self, field: str, step: str):
        self.field = field
        self.step = step
        super().__init__(
            f'Invalid FunctionConfiguration. Required field "{field}" was missing in {step}.'
        )


# Raised by the gateway only; the orchestrator turns it into the create branch
class RemoteNotFound(DeployError):
    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"Function not found: {resource}")


class RemoteRequestFailed(DeployError):
    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class RoleCreationMismatch(DeployError):
    def __init__(self, requested: str, actual: Optional[str]):
        self.requested = requested
        self.actual = actual
        super().__init__(
            f"Requested role {requested} but IAM created {actual!r} instead."
        )


class MissingAccountId(DeployError):
    def __init__(self):
        super().__init__("The caller identity did not include an account id.")


class EmptyPayloadFile(DeployError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No data was returned when trying to load payload file: {path}")


class InvocationFailed(DeployError):
    def __init__(self, function: str, message: str):
        self.function = function
        self.message = message
        super().__init__(f"There was an error invoking the {function} lambda. Message: {message}")


class VerificationFailed(DeployError):
    def __init__(self, function: str):
        self.function = function
        super().__init__(f"The response from {function} did not pass verification.")


class BatchPublishError(DeployError):
    """Raised after a batch finishes when at least one artifact failed.

    ``outcomes`` holds one PublishOutcome per artifact so callers can see
    which functions were switched and which were not.
    """

    def __init__(self, outcomes: List["PublishOutcome"]):  # noqa: F821
        self.outcomes = outcomes
        self.failures = [o for o in outcomes if not o.succeeded]
        names = ", ".join(o.artifact for o in self.failures)
        super().__init__(
            f"{len(self.failures)} of {len(outcomes)} archive(s) failed to publish: {names}"
        )


class InvalidSetting(DeployError):
    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"{name} must be a whole number, got {value!r}.")
