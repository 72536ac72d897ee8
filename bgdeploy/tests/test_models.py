import json

import pytest

from bgdeploy.errors import ArchiveNotFound, MissingConfigField
from bgdeploy.models.function import AliasPointer, DeployableArtifact, FunctionConfiguration
from bgdeploy.models.publish import PublishOutcome, PublishState


def test_configuration_from_aws_response():
    config = FunctionConfiguration.from_aws_response({
        "FunctionName": "my-function",
        "RevisionId": "1234",
        "CodeSha256": "abc=",
        "Version": "$LATEST",
        "Role": "arn:aws:iam::123456789012:role/my-role",
        "State": "Active",
        "LastUpdateStatus": "Successful",
        "Runtime": "provided.al2",
    })
    assert config.function_name == "my-function"
    assert config.revision_id == "1234"
    assert config.code_sha256 == "abc="
    assert config.version == "$LATEST"
    assert config.state == "Active"
    assert json.loads(str(config))["role"].endswith("role/my-role")


def test_require_returns_value():
    config = FunctionConfiguration(function_name="my-function", version="3")
    assert config.require("version", "verify") == "3"


@pytest.mark.parametrize("field", ["revision_id", "code_sha256", "version"])
def test_require_missing_field(field):
    config = FunctionConfiguration(function_name="my-function")
    with pytest.raises(MissingConfigField) as exc:
        config.require(field, "some_step")
    assert (exc.value.field, exc.value.step) == (field, "some_step")
    assert field in str(exc.value) and "some_step" in str(exc.value)


def test_with_version_keeps_other_fields():
    config = FunctionConfiguration(function_name="f", revision_id="r", code_sha256="s")
    assert config.with_version("7") == FunctionConfiguration("f", "r", "s", "7")


def test_alias_from_aws_response():
    alias = AliasPointer.from_aws_response("my-function", {
        "AliasArn": "arn:aws:lambda:us-east-1:123456789012:function:my-function:development",
        "Name": "development",
        "FunctionVersion": "5",
        "RevisionId": "rev-1",
    })
    assert alias.alias_name == "development"
    assert alias.target_version == "5"
    assert alias.to_dict()["function_name"] == "my-function"


def test_artifact_read_bytes(tmp_path):
    path = tmp_path / "my-function.zip"
    path.write_bytes(b"zip-bytes")
    assert DeployableArtifact(str(path), "my-function").read_bytes() == b"zip-bytes"


def test_artifact_missing_or_empty(tmp_path):
    with pytest.raises(ArchiveNotFound):
        DeployableArtifact(str(tmp_path / "nope.zip"), "nope").read_bytes()

    empty = tmp_path / "empty.zip"
    empty.write_bytes(b"")
    with pytest.raises(ArchiveNotFound):
        DeployableArtifact(str(empty), "empty").read_bytes()


def test_outcome_to_dict_for_failure():
    outcome = PublishOutcome(
        artifact="a.zip", state=PublishState.FAILED, reached=PublishState.VERSION_PUBLISHED,
        error=MissingConfigField("version", "verify"),
    )
    data = outcome.to_dict()
    assert not outcome.succeeded
    assert data["state"] == "failed" and data["reached"] == "version_published"
    assert data["error"].startswith("MissingConfigField")
