"""Output kinds produced by ``flutter build`` and filtering of found artifacts."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath
from typing import Dict, List, Sequence

from .context import Console


class OutputKind(str, Enum):
    APK = "apk"
    APP_BUNDLE = "appbundle"
    IOS_APP = "app"
    ARCHIVE = "archive"

    @property
    def traits(self) -> "KindTraits":
        return KIND_TRAITS[self]

    @property
    def is_directory(self) -> bool:
        return self.traits.is_directory


@dataclass(frozen=True, slots=True)
class KindTraits:
    """Everything that differs between output kinds.

    ``extension`` is ``None`` for directory outputs, which are never filtered
    by name. ``single_env``/``list_env`` name the outputs published for file
    artifacts, ``dir_env``/``zip_env`` those for directory artifacts.
    """

    build_command: str
    is_directory: bool
    extension: str | None = None
    single_env: str | None = None
    list_env: str | None = None
    dir_env: str | None = None
    zip_env: str | None = None


KIND_TRAITS: Dict[OutputKind, KindTraits] = {
    OutputKind.APK: KindTraits(
        build_command="apk",
        is_directory=False,
        extension=".apk",
        single_env="BITRISE_APK_PATH",
        list_env="BITRISE_APK_PATH_LIST",
    ),
    OutputKind.APP_BUNDLE: KindTraits(
        build_command="appbundle",
        is_directory=False,
        extension=".aab",
        single_env="BITRISE_AAB_PATH",
        list_env="BITRISE_AAB_PATH_LIST",
    ),
    # $ flutter build ios -> .app output
    OutputKind.IOS_APP: KindTraits(
        build_command="ios",
        is_directory=True,
        dir_env="BITRISE_APP_DIR_PATH",
    ),
    # $ flutter build ipa -> .xcarchive output
    OutputKind.ARCHIVE: KindTraits(
        build_command="ipa",
        is_directory=True,
        dir_env="BITRISE_XCARCHIVE_PATH",
        zip_env="BITRISE_XCARCHIVE_ZIP_PATH",
    ),
}


def filter_artifacts(
    kind: OutputKind,
    artifacts: Sequence[str],
    console: Console | None = None,
) -> List[str]:
    """Keep the artifacts that belong to ``kind``, preserving their order."""
    extension = kind.traits.extension
    if extension is None:
        return list(artifacts)

    kept: List[str] = []
    for artifact in artifacts:
        if PurePath(artifact).suffix != extension:
            if console:
                console.debug(
                    f"Artifact ({artifact}) found by output patterns, but it's not the "
                    f"selected output type ({kind.value}) - Skip")
            continue
        kept.append(artifact)
    return kept


__all__ = ["KIND_TRAITS", "KindTraits", "OutputKind", "filter_artifacts"]
