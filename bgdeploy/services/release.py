# bgdeploy/services/release.py
import logging

from bgdeploy.errors import RemoteNotFound
from bgdeploy.models.function import AliasPointer, FunctionConfiguration

logger = logging.getLogger(__name__)


class VersionPublisher:
    def __init__(self, gateway):
        self._gateway = gateway

    def publish_latest(self, configuration: FunctionConfiguration) -> FunctionConfiguration:
        """Lock $LATEST into a new immutable version and return its configuration."""
        function_name = configuration.require("function_name", "publish_latest")
        code_sha256 = configuration.require("code_sha256", "publish_latest")
        logger.debug(f"Publishing $LATEST: {function_name}")
        published = self._gateway.publish_version(function_name, code_sha256)
        logger.debug(f"New version for {function_name}: {published.version or 'No Version Specified'}")
        return published


class AliasSwitcher:
    """
    Repoints a traffic alias, creating it the first time it is used. Callers
    must only hand it a configuration whose version has already passed
    VerificationGate.verify().
    """

    def __init__(self, gateway):
        self._gateway = gateway

    def switch_alias(self, configuration: FunctionConfiguration, alias_name: str) -> AliasPointer:
        function_name = configuration.require("function_name", "switch_alias")
        version = configuration.require("version", "switch_alias")
        logger.info(f"Updating {alias_name} alias for {function_name} to version: {version}")
        try:
            return self._gateway.update_alias(function_name, version, alias_name)
        except RemoteNotFound:
            logger.info(f"{function_name} has no {alias_name} alias yet, creating it")
            return self._gateway.create_alias(function_name, version, alias_name)
