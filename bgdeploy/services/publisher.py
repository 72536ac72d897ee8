# bgdeploy/services/publisher.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

import boto3

from bgdeploy.config import DEFAULT_ALIAS, DEFAULT_HANDLER, DEFAULT_RUNTIME, PublishSettings
from bgdeploy.errors import BatchPublishError, RemoteNotFound
from bgdeploy.models.function import AliasPointer, DeployableArtifact, FunctionConfiguration
from bgdeploy.models.publish import InvocationTask, PublishOutcome, PublishState
from bgdeploy.services.identity import IdentityProvisioner
from bgdeploy.services.lambda_gateway import LambdaGateway
from bgdeploy.services.name_resolver import resolve_artifact
from bgdeploy.services.release import AliasSwitcher, VersionPublisher
from bgdeploy.services.verification import VerificationGate
from bgdeploy.utils import aws_clients

logger = logging.getLogger(__name__)


class _Progress:
    """Tracks the state one artifact has reached so failures can report it."""

    def __init__(self, location: str):
        self.location = location
        self.state = PublishState.START

    def advance(self, state: PublishState) -> None:
        logger.debug(f"{self.location}: {self.state.value} -> {state.value}")
        self.state = state


class PublishOrchestrator:
    """
    Blue-green publisher for Lambda archives.

    For each archive: update (or create) the function's code, lock it into a
    new version, invoke that version, and only if the invocation passes move
    the alias to it. Archives in a batch run concurrently; the steps for a
    single archive always run in order.
    """

    def __init__(
        self,
        gateway,
        identity,
        *,
        versions: Optional[VersionPublisher] = None,
        verifier: Optional[VerificationGate] = None,
        switcher: Optional[AliasSwitcher] = None,
        alias: str = DEFAULT_ALIAS,
        handler: str = DEFAULT_HANDLER,
        runtime: str = DEFAULT_RUNTIME,
        max_workers: int = 4,
    ) -> None:
        self.gateway = gateway
        self.identity = identity
        self.versions = versions or VersionPublisher(gateway)
        self.verifier = verifier or VerificationGate(gateway)
        self.switcher = switcher or AliasSwitcher(gateway)
        self.alias = alias
        self.handler = handler
        self.runtime = runtime
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, settings: PublishSettings,
                      session_factory: Callable[..., boto3.Session] = boto3.Session) -> "PublishOrchestrator":
        """Wire the real boto3-backed collaborators from one shared session."""
        session = aws_clients.make_session(settings, session_factory)
        gateway = LambdaGateway(aws_clients.lambda_client(session, settings), settings=settings)
        identity = IdentityProvisioner(
            function_role=settings.function_role,
            iam_client=aws_clients.iam_client(session, settings),
            sts_client=aws_clients.sts_client(session, settings),
            settings=settings,
        )
        verifier = VerificationGate(
            gateway,
            settle_delay=settings.settle_delay,
            attempts=settings.verify_attempts,
        )
        return cls(
            gateway,
            identity,
            verifier=verifier,
            alias=settings.alias,
            handler=settings.handler,
            runtime=settings.runtime,
            max_workers=settings.max_workers,
        )

    # ---- single archive ----

    def publish_archive(self, location: str, alias: Optional[str] = None,
                        task: Optional[InvocationTask] = None) -> AliasPointer:
        """Publish one archive and return the switched alias; step errors propagate unchanged."""
        progress = _Progress(location)
        try:
            return self._publish(progress, alias or self.alias, task)
        except Exception as e:
            logger.error(f"Error publishing {location} (reached {progress.state.value}): {e}")
            raise

    def run(self, location: str, alias: Optional[str] = None,
            task: Optional[InvocationTask] = None) -> PublishOutcome:
        """Like publish_archive(), but failures come back in the outcome instead of raising."""
        progress = _Progress(location)
        try:
            pointer = self._publish(progress, alias or self.alias, task)
        except Exception as e:
            logger.error(f"Error publishing {location} (reached {progress.state.value}): {e}")
            return PublishOutcome(artifact=location, state=PublishState.FAILED, reached=progress.state, error=e)
        return PublishOutcome(artifact=location, state=progress.state, reached=progress.state, alias=pointer)

    def _publish(self, progress: _Progress, alias: str, task: Optional[InvocationTask]) -> AliasPointer:
        logger.info(f"--- Publishing: {progress.location} ---")
        artifact = resolve_artifact(progress.location)
        progress.advance(PublishState.NAME_RESOLVED)

        configuration = self._publish_function_code(progress, artifact)
        published = self.versions.publish_latest(configuration)
        progress.advance(PublishState.VERSION_PUBLISHED)

        verified = self.verifier.verify(published, task)
        progress.advance(PublishState.VERIFIED)

        pointer = self.switcher.switch_alias(verified, alias)
        progress.advance(PublishState.ALIAS_SWITCHED)
        logger.info(f"{artifact.function_name}: {pointer.alias_name} -> version {pointer.target_version}")
        return pointer

    def _publish_function_code(self, progress: _Progress,
                               artifact: DeployableArtifact) -> FunctionConfiguration:
        try:
            current = self.gateway.fetch(artifact.function_name)
        except RemoteNotFound:
            progress.advance(PublishState.CONFIG_FETCHED)
            logger.info(f"{artifact.function_name} does not exist yet, creating it")
            progress.advance(PublishState.CREATING)
            return self._create_function(artifact)

        progress.advance(PublishState.CONFIG_FETCHED)
        progress.advance(PublishState.UPDATING)
        return self._update_function(current, artifact)

    def _update_function(self, current: FunctionConfiguration,
                         artifact: DeployableArtifact) -> FunctionConfiguration:
        function_name = current.require("function_name", "update_code")
        revision_id = current.require("revision_id", "update_code")
        zip_bytes = artifact.read_bytes()
        logger.debug(f"Update function code: {function_name} (revision {revision_id})")
        updated = self.gateway.update_code(function_name, revision_id, zip_bytes)
        logger.debug(f"Done updating Lambda: {artifact.location}")
        return updated

    def _create_function(self, artifact: DeployableArtifact) -> FunctionConfiguration:
        zip_bytes = artifact.read_bytes()
        role = self.identity.validate(self.identity.resolve_role(artifact.function_name))
        created = self.gateway.create(
            artifact.function_name, zip_bytes, role, self.handler, self.runtime
        )
        # only the default alias is set up before verification; any other
        # alias is created by the switch once its version has passed
        self.gateway.create_alias(artifact.function_name, created.version or "1", DEFAULT_ALIAS)
        logger.debug(f"Done creating Lambda: {artifact.location}")
        return created

    # ---- batches ----

    def _run_batch(self, locations: List[str], alias: Optional[str],
                   task: Optional[InvocationTask]) -> Tuple[List[PublishOutcome], Optional[PublishOutcome]]:
        first_failure: Optional[PublishOutcome] = None
        outcomes: Dict[int, PublishOutcome] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self.run, location, alias, task): i
                for i, location in enumerate(locations)
            }
            for future in as_completed(future_to_index):
                outcome = future.result()
                outcomes[future_to_index[future]] = outcome
                if outcome.succeeded:
                    logger.debug(f"Updated: {outcome.alias}")
                elif first_failure is None:
                    first_failure = outcome
        return [outcomes[i] for i in range(len(locations))], first_failure

    def publish_all(self, locations: List[str], alias: Optional[str] = None,
                    task: Optional[InvocationTask] = None) -> List[PublishOutcome]:
        """Publish every archive concurrently and report each one, in input order."""
        if not locations:
            return []
        outcomes, _ = self._run_batch(locations, alias, task)
        return outcomes

    def publish_archives(self, locations: List[str], alias: Optional[str] = None,
                         task: Optional[InvocationTask] = None) -> List[AliasPointer]:
        """
        Publish every archive concurrently. Sibling runs always finish, but if
        any archive failed a BatchPublishError is raised afterwards, chained
        to the first failure.
        """
        if not locations:
            return []
        outcomes, first_failure = self._run_batch(locations, alias, task)
        if first_failure is not None:
            raise BatchPublishError(outcomes) from first_failure.error
        return [o.alias for o in outcomes]
