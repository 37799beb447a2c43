"""Parsing of Flutter package resolution files.

Two formats exist. The legacy ``.packages`` file lists one
``name:URI`` pair per line; ``.dart_tool/package_config.json`` replaced it
with a JSON document::

    {"configVersion": 2,
     "packages": [{"name": "async",
                   "rootUri": "file:///home/me/.pub-cache/hosted/pub.dev/async-2.11.0",
                   "packageUri": "lib/"}]}

Both are reduced to a mapping of package name to :class:`PackageLocation`.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping
from urllib.parse import unquote, urlsplit
import json
import re

from .errors import ManifestNotFoundError, ManifestParseError

LEGACY_MANIFEST = Path(".packages")
JSON_MANIFEST = Path(".dart_tool") / "package_config.json"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True, slots=True)
class PackageLocation:
    scheme: str
    path: str

    @property
    def is_local(self) -> bool:
        return self.scheme in ("", "file")


PackageMap = Dict[str, PackageLocation]


def parse_location(uri: str) -> PackageLocation:
    """Split ``uri`` into its scheme and percent-decoded path."""
    if _CONTROL_CHARS.search(uri):
        raise ManifestParseError(f"could not parse location URI: {uri!r} (control character)")
    if uri.startswith(":"):
        raise ManifestParseError(f"could not parse location URI: {uri!r} (missing scheme)")
    if _BAD_ESCAPE.search(uri):
        raise ManifestParseError(f"could not parse location URI: {uri!r} (invalid escape)")
    try:
        parts = urlsplit(uri)
    except ValueError as exc:
        raise ManifestParseError(f"could not parse location URI: {uri!r} ({exc})") from exc
    return PackageLocation(scheme=parts.scheme.lower(), path=unquote(parts.path))


def parse_package_resolution_file(contents: str) -> PackageMap:
    """Parse the legacy line based format.

    Both ``\\n`` and ``\\r`` separate lines, blank lines and ``#`` comments
    are ignored. Any malformed line aborts the whole parse.
    """
    package_to_location: PackageMap = {}

    for line in contents.replace("\r", "\n").split("\n"):
        if not line.strip():
            continue
        if line.startswith("#"):
            continue

        # analyzer:file:///Users/vagrant/.pub-cache/hosted/pub.dartlang.org/analyzer-0.36.4/lib/
        name, sep, uri = line.partition(":")
        if not sep:
            raise ManifestParseError(f"unexpected line format: {line!r}")

        package_to_location[name] = parse_location(uri)

    return package_to_location


def _join_uri(root_uri: str, package_uri: str) -> str:
    if not package_uri:
        return root_uri
    return f"{root_uri.rstrip('/')}/{package_uri.lstrip('/')}"


def parse_package_config(contents: str) -> PackageMap:
    """Parse ``package_config.json`` contents."""
    try:
        data: Any = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise ManifestParseError(f"invalid package config JSON: {exc}") from exc

    if not isinstance(data, Mapping) or not isinstance(data.get("packages", []), list):
        raise ManifestParseError("package config must be an object with a 'packages' list")

    packages: PackageMap = {}
    for item in data.get("packages", []):
        if not isinstance(item, Mapping):
            raise ManifestParseError(f"unexpected package entry: {item!r}")
        name = item.get("name")
        root_uri = item.get("rootUri", "")
        package_uri = item.get("packageUri", "")
        if not isinstance(name, str) or not isinstance(root_uri, str) or not isinstance(package_uri, str):
            raise ManifestParseError(f"unexpected package entry: {item!r}")

        packages[name] = parse_location(_join_uri(root_uri, package_uri))

    return packages


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestParseError(
            f"failed to read package resolution file {path}: {exc}") from exc


def read_package_locations(project_dir: str | Path) -> PackageMap:
    """Read the package map of a Flutter project.

    The legacy file wins whenever it exists, even when it is corrupt and a
    valid JSON config sits next to it.
    """
    project = Path(project_dir)

    legacy_path = project / LEGACY_MANIFEST
    if legacy_path.exists():
        try:
            return parse_package_resolution_file(_read(legacy_path))
        except ManifestParseError as exc:
            raise ManifestParseError(
                f"failed to parse Flutter package resolution file {legacy_path}: {exc}") from exc

    json_path = project / JSON_MANIFEST
    if not json_path.exists():
        raise ManifestNotFoundError(
            f"no package resolution file found: neither {legacy_path} nor {json_path} exists")

    return parse_package_config(_read(json_path))


__all__ = [
    "JSON_MANIFEST",
    "LEGACY_MANIFEST",
    "PackageLocation",
    "PackageMap",
    "parse_location",
    "parse_package_config",
    "parse_package_resolution_file",
    "read_package_locations",
]
