"""Utilities for executing external commands with optional recording support."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple
import os
import shlex
import subprocess
import sys


@dataclass
class CommandResult:
    """Represents the outcome of an executed command.

    ``streamed`` is set when the output went to the terminal, in which case
    ``stdout`` is empty and ``stderr`` only holds what was teed.
    """

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    streamed: bool = False


class CommandError(RuntimeError):
    """Raised when a checked command exits non-zero."""

    def __init__(self, result: CommandResult):
        message = f"Command failed with exit code {result.returncode}: {' '.join(map(shlex.quote, result.command))}"
        if result.streamed:
            message = f"{message}\nstdout/stderr already streamed above."
        else:
            message = (
                f"{message}\n"
                f"stdout: {result.stdout}\n"
                f"stderr: {result.stderr}"
            )
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Abstract command runner interface.

    ``stream`` inherits the parent's stdout/stderr. Combined with
    ``tee_stderr`` the error stream is still echoed to the terminal but also
    collected into :attr:`CommandResult.stderr` so callers can inspect it.
    ``input`` is written to the child's stdin.
    """

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        tee_stderr: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)

    @staticmethod
    def _checked(result: CommandResult, check: bool) -> CommandResult:
        if check and result.returncode != 0:
            raise CommandError(result)
        return result


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        tee_stderr: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        options: Dict[str, Any] = {
            "cwd": str(cwd) if cwd else None,
            "env": {**os.environ, **env} if env is not None else None,
            "text": True,
        }

        if stream and tee_stderr:
            return self._checked(self._run_teed(command, input, options), check)

        process = subprocess.run(
            command,
            input=input,
            capture_output=not stream,
            check=False,
            **options,
        )
        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=stream,
        )
        return self._checked(result, check)

    @staticmethod
    def _run_teed(
        command: Sequence[str],
        input: str | None,
        options: Mapping[str, Any],
    ) -> CommandResult:
        captured: List[str] = []
        with subprocess.Popen(
            command,
            stdin=subprocess.PIPE if input is not None else None,
            stderr=subprocess.PIPE,
            errors="replace",
            **options,
        ) as process:
            if input is not None and process.stdin is not None:
                try:
                    process.stdin.write(input)
                    process.stdin.close()
                except BrokenPipeError:
                    # The child exited without reading its input.
                    pass
            for line in process.stderr:
                sys.stderr.write(line)
                sys.stderr.flush()
                captured.append(line)
            returncode = process.wait()

        return CommandResult(
            command=command,
            returncode=returncode,
            stdout="",
            stderr="".join(captured),
            streamed=True,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    env: Dict[str, str]
    note: str | None
    stream: bool
    input: str | None = None


@dataclass
class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them.

    ``responses`` maps an executable name to the canned
    ``(returncode, stdout, stderr)`` its invocations produce; anything else
    succeeds with empty output.
    """

    responses: Dict[str, Tuple[int, str, str]] = field(default_factory=dict)
    commands: List[RecordedCommand] = field(default_factory=list)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        tee_stderr: bool = False,
        input: str | None = None,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=list(command),
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env else {},
                note=note,
                stream=stream,
                input=input,
            )
        )
        returncode, stdout, stderr = self.responses.get(command[0], (0, "", ""))
        result = CommandResult(
            command=command, returncode=returncode, stdout=stdout, stderr=stderr)
        return self._checked(result, check)

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)

    def commands_for(self, executable: str) -> List[RecordedCommand]:
        return [record for record in self.commands if record.command[0] == executable]
