"""Archive management utilities reusable across projects."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable
import os
import stat
import zipfile

_SUFFIX_FORMATS: list[tuple[str, str]] = [
    (".zip", "zip"),
]

_FORMAT_ALIASES: dict[str, str] = {
    "zip": "zip",
}

_SYMLINK_MODE = stat.S_IFLNK | 0o777


@runtime_checkable
class ArchiveConsole(Protocol):
    """Minimal console interface required by :class:`ArchiveManager`."""

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


@dataclass(slots=True)
class ArchiveArtifact:
    """Description of filesystem content to package into an archive.

    With ``include_root`` the archive entries are prefixed with the name of
    ``source_dir`` (``Runner.app/Info.plist``) instead of starting at the
    directory's contents.
    """

    source_dir: Path
    include_root: bool = False


class ArchiveManager:
    """Create zip archives from directories."""

    def __init__(
        self,
        console: ArchiveConsole,
    ) -> None:
        self._console = console

    def create_archive(
        self,
        *,
        artifact: ArchiveArtifact,
        target_path: Path | str,
        format_hint: str | None = None,
        overwrite: bool = True,
    ) -> Path:
        """Create an archive for *artifact* at *target_path*.

        Parameters
        ----------
        artifact:
            Data describing the directory to archive.
        target_path:
            Exact path (including filename) for the archive that should be created.
        format_hint:
            Optional explicit archive format such as ``"zip"``. When omitted,
            the format is inferred from *target_path*'s suffix.
        overwrite:
            When ``False`` and the target already exists, a :class:`FileExistsError`
            is raised instead of replacing the file.
        """

        target = Path(target_path).expanduser()
        source_dir = Path(artifact.source_dir).expanduser()

        if not source_dir.is_dir():
            raise FileNotFoundError(
                f"Archive source directory '{source_dir}' does not exist")

        archive_format = self._resolve_archive_format(
            target=target, format_hint=format_hint)

        if target.exists() and not overwrite:
            raise FileExistsError(f"Archive target '{target}' already exists")

        target.parent.mkdir(parents=True, exist_ok=True)

        if archive_format == "zip":
            return self._make_zip_archive(
                target_path=target,
                source_dir=source_dir,
                include_root=artifact.include_root,
            )

        raise RuntimeError(f"Unsupported archive format '{archive_format}'")

    def _resolve_archive_format(
            self,
            *,
            target: Path,
            format_hint: str | None) -> str:
        if format_hint:
            normalized = format_hint.strip().lower()
            if normalized in _FORMAT_ALIASES:
                return _FORMAT_ALIASES[normalized]
            raise ValueError(
                f"Unsupported archive format hint '{format_hint}'")

        filename = target.name.lower()
        for suffix, fmt in _SUFFIX_FORMATS:
            if filename.endswith(suffix):
                return fmt

        raise ValueError(
            "Unable to determine archive format from target path. "
            "Provide an explicit format_hint or use a supported suffix."
        )

    def _make_zip_archive(
        self,
        *,
        target_path: Path,
        source_dir: Path,
        include_root: bool,
    ) -> Path:
        root_dir_path = Path(source_dir)
        prefix = Path(root_dir_path.name) if include_root else Path()

        # A failed run leaves nothing under the final name.
        partial_path = target_path.with_name(f".{target_path.name}.partial")
        try:
            with zipfile.ZipFile(
                partial_path,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=9,
                allowZip64=True,
                strict_timestamps=False,
            ) as archive:
                for dirpath, dirnames, filenames in os.walk(
                        source_dir, topdown=True):
                    dirnames.sort()
                    filenames.sort()

                    current_dir = Path(dirpath)
                    relative_dir = prefix / current_dir.relative_to(root_dir_path)
                    if relative_dir != Path("."):
                        # Directory entries keep empty folders such as dSYMs/.
                        archive.write(current_dir, relative_dir.as_posix())

                    # Symlinked directories are stored as links, not followed.
                    for dirname in list(dirnames):
                        dir_path = current_dir / dirname
                        if dir_path.is_symlink():
                            self._write_symlink(archive, dir_path, relative_dir / dirname)
                            dirnames.remove(dirname)

                    for filename in filenames:
                        file_path = current_dir / filename
                        arcname_path = relative_dir / filename
                        if file_path.is_symlink():
                            self._write_symlink(archive, file_path, arcname_path)
                        else:
                            archive.write(file_path, arcname_path.as_posix())

            os.replace(partial_path, target_path)
        except BaseException:
            partial_path.unlink(missing_ok=True)
            raise

        return target_path

    @staticmethod
    def _write_symlink(archive: zipfile.ZipFile, link_path: Path, arcname: Path) -> None:
        info = zipfile.ZipInfo(arcname.as_posix())
        info.create_system = 3  # unix, so external_attr carries the mode
        info.external_attr = _SYMLINK_MODE << 16
        archive.writestr(info, os.readlink(link_path))

    def extract_archive(
        self,
        *,
        archive_path: Path | str,
        destination_dir: Path | str,
        format_hint: str | None = None,
    ) -> None:
        """Extract an archive to a destination directory.

        Parameters
        ----------
        archive_path:
            Path to the archive file.
        destination_dir:
            Directory where contents should be extracted.
        format_hint:
            Optional explicit archive format.
        """
        archive = Path(archive_path).expanduser()
        dest = Path(destination_dir).expanduser()

        if not archive.exists():
            raise FileNotFoundError(f"Archive '{archive}' does not exist")

        dest.mkdir(parents=True, exist_ok=True)
        archive_format = self._resolve_archive_format(
            target=archive, format_hint=format_hint)

        if archive_format == "zip":
            with zipfile.ZipFile(archive, "r") as zip_ref:
                zip_ref.extractall(dest)
        else:
            raise ValueError(f"Unsupported archive format: {archive_format}")

        self._console.info(f"Extracted {archive} to {dest}")


__all__ = [
    "ArchiveConsole",
    "ArchiveManager",
    "ArchiveArtifact",
]
