# bgdeploy/utils/aws_clients.py
from typing import Callable, Optional

import boto3
from botocore.config import Config

from bgdeploy.config import PublishSettings


def make_session(settings: PublishSettings,
                 session_factory: Callable[..., boto3.Session] = boto3.Session) -> boto3.Session:
    session_kwargs = {"region_name": settings.region}
    if settings.profile:
        session_kwargs["profile_name"] = settings.profile
    return session_factory(**session_kwargs)


def client_config(settings: PublishSettings) -> Config:
    # one pool shared by every concurrent publish, so size it to the worker count
    return Config(
        max_pool_connections=max(10, settings.max_workers * 2),
        connect_timeout=60,
        read_timeout=settings.read_timeout,
        retries={"max_attempts": 3, "mode": "standard"},
    )


def lambda_client(session: boto3.Session, settings: PublishSettings,
                  endpoint_url: Optional[str] = None):
    kwargs = {"config": client_config(settings)}
    ep = endpoint_url or settings.endpoint_url
    if ep:
        kwargs["endpoint_url"] = ep
    return session.client("lambda", **kwargs)


def iam_client(session: boto3.Session, settings: PublishSettings):
    return session.client("iam", config=client_config(settings))


def sts_client(session: boto3.Session, settings: PublishSettings):
    return session.client("sts", config=client_config(settings))
