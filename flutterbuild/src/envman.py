"""
Publication of step outputs through envman.
"""
import shutil
from pathlib import Path
from typing import Dict

from core.command_runner import CommandError, CommandRunner

from .errors import ExportError, PublishError


class EnvmanPublisher:
    """Persist named outputs with ``envman add``.

    The value is passed on stdin so multi-line lists survive unchanged.
    Every exported pair is also kept in :attr:`exported` for reporting.
    """

    def __init__(self, runner: CommandRunner, executable: str = "envman"):
        self._runner = runner
        self._executable = executable
        self.exported: Dict[str, str] = {}

    def export(self, key: str, value: str) -> None:
        try:
            self._runner.run(
                [self._executable, "add", "--key", key],
                input=value,
            )
        except (CommandError, OSError) as exc:
            raise PublishError(
                f"failed to export environment variable {key}: {exc}") from exc
        self.exported[key] = value

    def export_output_file(self, source: str | Path, destination: str | Path, key: str) -> Path:
        """Copy ``source`` to ``destination`` and publish the copy under ``key``."""
        src = Path(source)
        dest = Path(destination)
        if src.resolve() != dest.resolve():
            try:
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(src, dest)
            except OSError as exc:
                raise ExportError(f"failed to copy {src} to {dest}: {exc}") from exc
        self.export(key, str(dest))
        return dest
