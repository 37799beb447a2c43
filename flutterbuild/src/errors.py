"""Exception hierarchy shared by the flutterbuild modules."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence


class FlutterBuildError(RuntimeError):
    """Base class for every failure raised by the step."""


class ConfigError(FlutterBuildError):
    """Step inputs are missing or invalid."""


class DiscoveryError(FlutterBuildError):
    """Walking the project tree for artifacts failed."""

    def __init__(self, path: str | Path, cause: OSError):
        super().__init__(f"failed to walk '{path}': {cause}")
        self.path = str(path)
        self.cause = cause


class ArtifactNotFoundError(FlutterBuildError):
    """No artifact matched the configured output patterns."""

    def __init__(self, patterns: Sequence[str], root: str | Path):
        super().__init__(
            f"Artifact path pattern ({', '.join(patterns)}) did not match any artifacts "
            f"on the path ({root}).\n"
            "Check that 'iOS/Android Output Pattern' and 'Project Location' is correct."
        )
        self.patterns = list(patterns)
        self.root = str(root)


class ExportError(FlutterBuildError):
    """Copying or archiving an artifact into the deploy directory failed."""


class PublishError(FlutterBuildError):
    """A named output could not be persisted."""


class BuildError(FlutterBuildError):
    """The flutter build command failed."""


class CodesignRequiredError(BuildError):
    """The iOS build stopped because no usable signing identity was selected."""


class CodesignError(FlutterBuildError):
    """Codesign identities could not be listed, stored or verified."""


class ManifestNotFoundError(FlutterBuildError):
    """Neither package resolution file exists in the project."""


class ManifestParseError(FlutterBuildError):
    """A package resolution file is malformed."""


class CachePathError(FlutterBuildError):
    """A package location cannot be turned into a cache path."""


__all__ = [
    "ArtifactNotFoundError",
    "BuildError",
    "CachePathError",
    "CodesignError",
    "CodesignRequiredError",
    "ConfigError",
    "DiscoveryError",
    "ExportError",
    "FlutterBuildError",
    "ManifestNotFoundError",
    "ManifestParseError",
    "PublishError",
]
