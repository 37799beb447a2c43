"""
Context and Console classes for flutterbuild.
"""
import sys
from dataclasses import dataclass
from pathlib import Path

from core.archive import ArchiveConsole
from core.command_runner import CommandRunner


class Console(ArchiveConsole):
    """Simple console output handler with configurable log level.

    Levels: none < error < warn < info < debug
    Default: 'info'. ``done`` lines are printed at info level.
    """

    LEVELS = {
        "none": 0,
        "error": 1,
        "warn": 2,
        "info": 3,
        "debug": 4,
    }

    def __init__(self, level: str = "info"):
        self.level_name = level
        self.level = self.LEVELS.get(level, self.LEVELS["info"])

    def set_level(self, level: str) -> None:
        self.level_name = level
        self.level = self.LEVELS.get(level, self.level)

    def section(self, title: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print()
            print(f"[INFO] {title}")

    def info(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[INFO] {message}")

    def done(self, message: str) -> None:
        if self.level >= self.LEVELS["info"]:
            print(f"[DONE] {message}")

    def warn(self, message: str) -> None:
        if self.level >= self.LEVELS["warn"]:
            print(f"[WARN] {message}")

    def error(self, message: str) -> None:
        if self.level >= self.LEVELS["error"]:
            print(f"[ERROR] {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        if self.level >= self.LEVELS["debug"]:
            print(f"[DEBUG] {message}")


@dataclass
class Context:
    console: Console
    runner: CommandRunner
    project_root: Path
    deploy_dir: Path
