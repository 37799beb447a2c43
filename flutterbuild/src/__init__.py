"""
flutterbuild - Flutter build, artifact export and dependency cache step.
"""

from .artifacts import OutputKind, filter_artifacts
from .build import BuildTarget
from .cache import CacheCollector, cacheable_flutter_dep_paths
from .cli import main
from .context import Console, Context
from .exporter import ArtifactExporter
from .globber import find_artifacts, find_paths
from .manifest import PackageLocation, read_package_locations
