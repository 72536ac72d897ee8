# bgdeploy/services/name_resolver.py
from pathlib import PurePosixPath

from bgdeploy.errors import NameResolutionError
from bgdeploy.models.function import DeployableArtifact

ARCHIVE_SUFFIX = ".zip"


def strip_file_scheme(location: str) -> str:
    return location[len("file://"):] if location.startswith("file://") else location


def parse_function_name(location: str) -> str:
    """
    Given ".../my-function.zip" return "my-function".
    Raises NameResolutionError when nothing is left of the file name.
    """
    filename = PurePosixPath(strip_file_scheme(location)).name
    if filename.endswith(ARCHIVE_SUFFIX):
        filename = filename[: -len(ARCHIVE_SUFFIX)]
    if not filename:
        raise NameResolutionError(location)
    return filename


def resolve_artifact(location: str) -> DeployableArtifact:
    path = strip_file_scheme(location)
    return DeployableArtifact(location=path, function_name=parse_function_name(path))
