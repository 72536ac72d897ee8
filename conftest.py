"""
Root conftest.py so `pytest` works from a plain checkout.

Puts the project root on sys.path so `bgdeploy` and `cli` import without
`pip install -e .`.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches for a real profile."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
