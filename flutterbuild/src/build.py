"""Build targets and the ``flutter build`` invocation."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
import shlex

from core.command_runner import CommandError, CommandRunner

from .artifacts import OutputKind
from .context import Console
from .errors import BuildError, CodesignRequiredError, ConfigError
from .globber import find_artifacts

NO_CODESIGN_FLAG = "--no-codesign"
CODESIGN_REQUIRED_MARKER = "code signing is required"
# Answer for the interactive identity prompt; aborts it instead of hanging.
_IDENTITY_PROMPT_ANSWER = "a"


@dataclass(frozen=True, slots=True)
class BuildTarget:
    display_name: str
    output_kind: OutputKind
    platform_selectors: Tuple[str, ...]
    output_patterns: Tuple[str, ...]
    project_location: Path
    additional_parameters: str = ""
    flutter_executable: str = field(default="flutter", compare=False)

    def buildable(self, platform: str) -> bool:
        return platform in self.platform_selectors

    @property
    def is_ios(self) -> bool:
        return self.output_kind in (OutputKind.IOS_APP, OutputKind.ARCHIVE)

    def build_command(self) -> List[str]:
        try:
            params = shlex.split(self.additional_parameters)
        except ValueError as exc:
            raise ConfigError(
                f"failed to parse additional parameters for {self.display_name}: {exc}") from exc

        if self.output_kind is OutputKind.IOS_APP and NO_CODESIGN_FLAG not in params:
            params.append(NO_CODESIGN_FLAG)

        return [self.flutter_executable, "build", self.output_kind.traits.build_command, *params]

    def build(self, runner: CommandRunner, console: Console) -> None:
        """Run ``flutter build`` in the project directory.

        Raises :class:`CodesignRequiredError` when an iOS app build stops on
        a missing signing identity, :class:`BuildError` on any other failure.
        """
        command = self.build_command()
        console.done(f"$ {runner.format_command(command)}")

        try:
            result = runner.run(
                command,
                cwd=self.project_location,
                stream=True,
                tee_stderr=self.is_ios,
                input=_IDENTITY_PROMPT_ANSWER if self.is_ios else None,
                check=False,
            )
        except OSError as exc:
            raise BuildError(f"failed to run {command[0]}: {exc}") from exc

        if (
            self.output_kind is OutputKind.IOS_APP
            and CODESIGN_REQUIRED_MARKER in result.stderr.lower()
        ):
            raise CodesignRequiredError(
                f"{self.display_name} build requires a codesign identity")

        if result.returncode != 0:
            raise BuildError(str(CommandError(result)))

    def artifact_paths(self, console: Console | None = None) -> List[str]:
        return find_artifacts(
            self.project_location,
            self.output_patterns,
            self.output_kind.is_directory,
            console,
        )
