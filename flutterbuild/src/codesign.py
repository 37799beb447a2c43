"""
iOS codesign identity handling.
"""
import json
import os
import re
import shlex
from pathlib import Path
from typing import Any, Dict, List, Mapping

from core.command_runner import CommandError, CommandRunner

from .build import NO_CODESIGN_FLAG
from .context import Console
from .errors import CodesignError

CODESIGN_FIELD = "ios-signing-cert"

# 1) 0123456789ABCDEF0123456789ABCDEF01234567 "iPhone Developer: John Doe (ABCDE12345)"
_IDENTITY_LINE = re.compile(r'^\s*\d+\)\s+[0-9A-Fa-f]+\s+"(?P<name>.+)"')


def default_settings_path(env: Mapping[str, str] | None = None) -> Path:
    home = (os.environ if env is None else env).get("HOME") or str(Path.home())
    return Path(home) / ".flutter_settings"


def installed_codesign_identities(runner: CommandRunner) -> List[str]:
    """List the names of valid codesigning identities in the keychains."""
    try:
        result = runner.run(["security", "find-identity", "-v", "-p", "codesigning"])
    except (CommandError, OSError) as exc:
        raise CodesignError(f"failed to fetch installed codesign identities: {exc}") from exc

    names: List[str] = []
    for line in result.stdout.splitlines():
        match = _IDENTITY_LINE.match(line)
        if match and match.group("name") not in names:
            names.append(match.group("name"))
    return names


class FlutterSettingsStore:
    """Key-value view of the Flutter tool's JSON settings file.

    Nothing touches the disk implicitly: callers ``load``, mutate with
    ``set`` and ``save`` when they are done. Values keep their JSON types
    so keys written by other flutter commands survive a save.
    """

    def __init__(self, path: Path, values: Dict[str, Any] | None = None):
        self.path = Path(path)
        self.values: Dict[str, Any] = dict(values or {})

    @classmethod
    def load(cls, path: Path) -> "FlutterSettingsStore":
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise CodesignError(f"failed to read {path.name} file: {exc}") from exc
        if not isinstance(data, dict):
            raise CodesignError(f"{path.name} must contain a JSON object")
        return cls(path, data)

    def get(self, key: str) -> Any:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def save(self) -> None:
        try:
            self.path.write_text(json.dumps(self.values, indent=1), encoding="utf-8")
        except OSError as exc:
            raise CodesignError(f"failed to write {self.path.name} file: {exc}") from exc


def prepare_codesign(
    runner: CommandRunner,
    console: Console,
    store: FlutterSettingsStore,
    ios_params: str,
    identity_override: str = "",
) -> None:
    """Make sure the identity flutter will sign with is installed."""
    console.section("iOS Codesign settings")

    try:
        params = shlex.split(ios_params)
    except ValueError as exc:
        raise CodesignError(f"failed to get iOS additional parameters: {exc}") from exc
    if NO_CODESIGN_FLAG in params:
        console.info(f" - Skipping codesign preparation, {NO_CODESIGN_FLAG} parameter set")
        return

    console.info(" Installed codesign identities:")
    installed = installed_codesign_identities(runner)
    for identity in installed:
        console.info(f" - {identity}")
    if not installed:
        raise CodesignError("No codesign identities installed")

    if identity_override:
        console.warn(" Override codesign identity:")
        console.info(f" - Store: {identity_override}")
        if identity_override not in installed:
            raise CodesignError(
                f'The selected identity "{identity_override}" is not installed on the system')
        store.set(CODESIGN_FIELD, identity_override)
        store.save()
        console.done(" - Done")
        return

    console.info(" Stored Flutter codesign settings:")
    stored = store.get(CODESIGN_FIELD)
    if stored is None:
        console.info(" - No codesign identity set")
        return
    if not isinstance(stored, str):
        raise CodesignError(f"{CODESIGN_FIELD} in {store.path.name} must be a string, got {stored!r}")
    console.info(f" - {stored}")
    if stored not in installed:
        raise CodesignError(f'Identity "{stored}" is not installed on the system')
