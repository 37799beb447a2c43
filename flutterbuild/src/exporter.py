"""
Republishing of build artifacts into the deploy directory.
"""
import os
from pathlib import Path
from typing import List, Sequence

from core.archive import ArchiveArtifact, ArchiveManager

from .artifacts import OutputKind, filter_artifacts
from .build import BuildTarget
from .context import Console
from .envman import EnvmanPublisher
from .errors import ArtifactNotFoundError, ExportError


class ArtifactExporter:
    """Copy or archive the artifacts of one build target and publish them."""

    def __init__(self, console: Console, publisher: EnvmanPublisher, deploy_dir: Path):
        self.console = console
        self.publisher = publisher
        self.deploy_dir = Path(deploy_dir)
        self._archive_manager = ArchiveManager(console)

    def export_artifacts(self, target: BuildTarget, artifacts: Sequence[str]) -> List[Path]:
        """Export ``artifacts`` found for ``target`` and return the deployed paths."""
        if target.output_kind.is_directory:
            if not artifacts:
                raise ArtifactNotFoundError(target.output_patterns, target.project_location)
            return [self._export_directory(target.output_kind, artifacts)]
        return self._export_files(target, artifacts)

    def _select_last(self, artifacts: Sequence[str]) -> str:
        artifact = artifacts[-1]
        if len(artifacts) > 1:
            self.console.warn(
                f"- Multiple artifacts found: {list(artifacts)}, exporting {artifact}")
        return artifact

    def _export_directory(self, kind: OutputKind, artifacts: Sequence[str]) -> Path:
        traits = kind.traits
        artifact = self._select_last(artifacts)
        file_name = os.path.basename(artifact)
        zip_path = self.deploy_dir / f"{file_name}.zip"

        try:
            self._archive_manager.create_archive(
                artifact=ArchiveArtifact(source_dir=Path(artifact), include_root=True),
                target_path=zip_path,
                format_hint="zip",
            )
        except (OSError, ValueError) as exc:
            raise ExportError(f"failed to archive {artifact}: {exc}") from exc
        self.console.done(f"- $BITRISE_DEPLOY_DIR/{file_name}.zip")

        self.publisher.export(traits.dir_env, artifact)
        self.console.done(f"- ${traits.dir_env}: {artifact}")

        if traits.zip_env:
            self.publisher.export(traits.zip_env, str(zip_path))
            self.console.done(f"- ${traits.zip_env}: {zip_path}")

        return zip_path

    def _export_files(self, target: BuildTarget, artifacts: Sequence[str]) -> List[Path]:
        traits = target.output_kind.traits
        selected = filter_artifacts(target.output_kind, artifacts, self.console)
        if not selected:
            raise ArtifactNotFoundError(target.output_patterns, target.project_location)

        deployed: List[Path] = []
        for path in selected:
            deployed_path = self.deploy_dir / os.path.basename(path)
            self.publisher.export_output_file(path, deployed_path, traits.single_env)
            deployed.append(deployed_path)

        self.publisher.export(traits.list_env, "\n".join(str(p) for p in deployed))

        self.console.done(f"- ${traits.single_env}: {deployed[-1]}")
        self.console.done(f"- ${traits.list_env}: {'|'.join(str(p) for p in deployed)}")
        return deployed
