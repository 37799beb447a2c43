"""Shared core utilities for build orchestration."""

from .archive import ArchiveArtifact, ArchiveConsole, ArchiveManager
from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    load_config_file,
    merge_mappings,
    normalize_string_list,
)

__all__ = [
    "ArchiveConsole",
    "ArchiveManager",
    "ArchiveArtifact",
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
]
