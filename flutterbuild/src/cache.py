"""
Dependency cache path collection.

Layout of the pub cache the resolver relies on::

    .pub-cache
    |- hosted
    |   |- pub.dev
    |       |- async-2.4.1
    |           |- lib                     resolved path of a hosted package
    |- git                                 packages from git sources
        |- cache
        |   |- <package>-<commit_hash>     bare clone, needed to avoid re-fetching
        |- <package>-<commit_hash>         checked out package
            |- mypath
                |- lib                     resolved path of a git package

Hosted packages are cached one by one (the parent of ``lib``). For git
packages the whole ``git`` directory is cached, since the bare clones under
``git/cache`` are needed for package resolution as well.
"""
import hashlib
import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Set

from .context import Console
from .envman import EnvmanPublisher
from .errors import CachePathError
from .manifest import PackageLocation, read_package_locations

PUB_CACHE_MARKER = ".pub-cache"
GIT_SOURCES_MARKER = "git"
PACKAGE_SOURCE_DIR = "lib"

CACHE_INCLUDE_ENV = "BITRISE_CACHE_INCLUDE_PATHS"
CACHE_EXCLUDE_ENV = "BITRISE_CACHE_EXCLUDE_PATHS"

GRADLE_LOCKFILE = "gradle.deps"
_GRADLE_FILE_PATTERNS = ("*.gradle", "*.gradle.kts", "gradle-wrapper.properties", "gradle.properties")
_GRADLE_SKIPPED_DIRS = {"build", ".gradle"}


def cacheable_flutter_dep_paths(
    package_to_location: Mapping[str, PackageLocation],
    console: Console | None = None,
) -> List[str]:
    """Return the directories to cache for the resolved packages.

    Raises :class:`CachePathError` when a package resolves to ``/``.
    """
    cache_paths: List[str] = []
    seen: Set[str] = set()

    def debug(message: str) -> None:
        if console:
            console.debug(f"Flutter dependency cache: {message}")

    def add(path: str) -> None:
        if path not in seen:
            seen.add(path)
            cache_paths.append(path)

    for package_name, location in package_to_location.items():
        if not location.is_local:
            debug(f"ignoring non-file scheme package: {location.path}")
            continue

        path = PurePosixPath(location.path)
        if not path.is_absolute():
            debug(f"ignoring relative package: {location.path}")
            continue

        # PurePosixPath already drops trailing separators.
        elements = path.parts[1:]
        if not elements:
            raise CachePathError(f"package {package_name} location is the root directory")

        if PUB_CACHE_MARKER not in elements:
            debug(f"package not in system dependency cache: {path}")
            continue
        cache_root_index = elements.index(PUB_CACHE_MARKER)

        if elements[-1] != PACKAGE_SOURCE_DIR:
            if console:
                console.warn(
                    "Flutter dependency cache: package path does not have top level "
                    f"'{PACKAGE_SOURCE_DIR}' element: {path}")
            continue

        git_root_index = cache_root_index + 1
        if len(elements) > git_root_index + 1 and elements[git_root_index] == GIT_SOURCES_MARKER:
            # e.g. $HOME/.pub-cache/git; .pub-cache may live in $HOME or in the Flutter SDK.
            git_root = str(PurePosixPath("/", *elements[: git_root_index + 1]))
            if git_root in seen:
                debug(f"git sources root already cached, skipping: {path}")
            else:
                debug(f"found pub package with git source: {path}")
                add(git_root)
            continue

        add(str(path.parent))

    return cache_paths


class CacheCollector:
    """Accumulate cache include/exclude paths and publish them in one go.

    Include entries may carry a change indicator: ``<path> -> <indicator>``.
    """

    def __init__(self, console: Console, env: Mapping[str, str] | None = None):
        self.console = console
        self._env = dict(env) if env is not None else dict(os.environ)
        self.include_paths: List[str] = []
        self.exclude_paths: List[str] = []

    def include_path(self, path: str, indicator: str | None = None) -> None:
        self.include_paths.append(f"{path} -> {indicator}" if indicator else path)

    def exclude_path(self, path: str) -> None:
        self.exclude_paths.append(path)

    @staticmethod
    def _merge(existing: str, added: Iterable[str]) -> List[str]:
        merged: List[str] = []
        for item in [*existing.split("\n"), *added]:
            item = item.strip()
            if item and item not in merged:
                merged.append(item)
        return merged

    def commit(self, publisher: EnvmanPublisher) -> None:
        if self.include_paths:
            includes = self._merge(self._env.get(CACHE_INCLUDE_ENV, ""), self.include_paths)
            publisher.export(CACHE_INCLUDE_ENV, "\n".join(includes))
            self.console.debug(f"Cache include paths: {includes}")
        if self.exclude_paths:
            excludes = self._merge(self._env.get(CACHE_EXCLUDE_ENV, ""), self.exclude_paths)
            publisher.export(CACHE_EXCLUDE_ENV, "\n".join(excludes))
            self.console.debug(f"Cache exclude paths: {excludes}")


def cache_cocoapods_deps(project_dir: Path, collector: CacheCollector) -> None:
    ios_dir = Path(project_dir).resolve() / "ios"
    podfile_lock = ios_dir / "Podfile.lock"
    if not podfile_lock.exists():
        return
    collector.include_path(str(ios_dir / "Pods"), str(podfile_lock))


def cache_carthage_deps(project_dir: Path, collector: CacheCollector) -> None:
    ios_dir = Path(project_dir).resolve() / "ios"
    cartfile_resolved = ios_dir / "Cartfile.resolved"
    if not cartfile_resolved.exists():
        return
    collector.include_path(str(ios_dir / "Carthage"), str(cartfile_resolved))


def _gradle_checksums(android_dir: Path) -> Dict[str, str]:
    checksums: Dict[str, str] = {}
    for pattern in _GRADLE_FILE_PATTERNS:
        for path in android_dir.rglob(pattern):
            if not path.is_file() or _GRADLE_SKIPPED_DIRS & set(path.relative_to(android_dir).parts):
                continue
            checksums[path.relative_to(android_dir).as_posix()] = hashlib.sha256(
                path.read_bytes()).hexdigest()
    return checksums


def cache_android_deps(
    project_dir: Path,
    collector: CacheCollector,
    home: Path | None = None,
) -> None:
    """Cache the Gradle dependency caches when the project has an Android part.

    The indicator is a lockfile of build script checksums written next to
    the scripts, so the cache is only refreshed when they change.
    """
    android_dir = Path(project_dir) / "android"
    if not android_dir.is_dir():
        return

    checksums = _gradle_checksums(android_dir)
    lockfile = android_dir / GRADLE_LOCKFILE
    lockfile.write_text(
        "".join(f"{name} {digest}\n" for name, digest in sorted(checksums.items())),
        encoding="utf-8",
    )

    gradle_home = (home or Path.home()) / ".gradle"
    collector.include_path(str(gradle_home / "caches"), str(lockfile))
    collector.include_path(str(gradle_home / "wrapper"), str(lockfile))
    collector.exclude_path(str(gradle_home / "caches" / "**" / "*.lock"))
    collector.exclude_path(str(gradle_home / "caches" / "*" / "plugin-resolution"))
    collector.exclude_path(str(gradle_home / "caches" / "journal-1"))


def cache_flutter_deps(project_dir: Path, collector: CacheCollector) -> List[str]:
    package_to_location = read_package_locations(project_dir)
    cache_paths = cacheable_flutter_dep_paths(package_to_location, collector.console)
    collector.console.debug(f"Marking Flutter dependency paths to be cached: {cache_paths}")
    for path in cache_paths:
        collector.include_path(path)
    return cache_paths
