"""Command line entry point: build, export and collect caches."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Callable, Iterable, List, Mapping
import os
import sys

from core.command_runner import CommandRunner, SubprocessCommandRunner

from .build import BuildTarget
from .cache import (
    CacheCollector,
    cache_android_deps,
    cache_carthage_deps,
    cache_cocoapods_deps,
    cache_flutter_deps,
)
from .codesign import FlutterSettingsStore, default_settings_path, prepare_codesign
from .config import StepConfig
from .context import Console, Context
from .envman import EnvmanPublisher
from .errors import (
    ArtifactNotFoundError,
    CodesignRequiredError,
    DiscoveryError,
    FlutterBuildError,
)
from .exporter import ArtifactExporter


class StepFailed(Exception):
    """Carries the message printed before exiting non-zero."""


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(
        prog="flutterbuild",
        description="Build a Flutter project and export its artifacts",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="TOML/YAML/JSON file with step inputs (environment variables take precedence)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Flutter settings file holding the codesign identity (default: ~/.flutter_settings)",
    )
    parser.add_argument(
        "--log",
        "-l",
        choices=sorted(Console.LEVELS, key=Console.LEVELS.get),
        default=None,
        help="Set log level (default: info, debug when is_debug_mode is true)",
    )
    return parser.parse_args(list(argv))


def _build_and_export(ctx: Context, cfg: StepConfig, target: BuildTarget, exporter: ArtifactExporter) -> None:
    console = ctx.console

    console.section(f"Build {target.display_name}")
    try:
        target.build(ctx.runner, console)
    except CodesignRequiredError as exc:
        if cfg.ios_codesign_identity:
            console.warn(
                "Invalid codesign identity is selected, choose the appropriate identity in the "
                "step's [iOS Platform Configs>Codesign Identity] input field.")
        else:
            console.warn(
                "You have multiple codesign identity installed, select the one you want to use "
                "and set its name in the [iOS Platform Configs>Codesign Identity] input field.")
        raise StepFailed(f"Failed to build {target.display_name} platform, error: {exc}") from exc
    except FlutterBuildError as exc:
        raise StepFailed(f"Failed to build {target.display_name} platform, error: {exc}") from exc

    console.section(f"Export {target.display_name} artifact")
    try:
        artifacts = target.artifact_paths(console)
    except DiscoveryError as exc:
        raise StepFailed(f"failed to find artifacts, error: {exc}") from exc

    try:
        if not artifacts:
            raise ArtifactNotFoundError(target.output_patterns, target.project_location)
        exporter.export_artifacts(target, artifacts)
    except ArtifactNotFoundError as exc:
        raise StepFailed(str(exc)) from exc
    except FlutterBuildError as exc:
        raise StepFailed(f"Failed to export {target.display_name} artifacts, error: {exc}") from exc


def collect_caches(ctx: Context, publisher: EnvmanPublisher, env: Mapping[str, str] | None = None) -> None:
    """Collect dependency caches; failures only produce warnings."""
    console = ctx.console
    console.section("Collecting cache")

    collector = CacheCollector(console, env)
    collectors: List[tuple[str, Callable[[Path, CacheCollector], object]]] = [
        ("cocoapods", cache_cocoapods_deps),
        ("carthage", cache_carthage_deps),
        ("android", cache_android_deps),
        ("flutter", cache_flutter_deps),
    ]
    for label, collect in collectors:
        try:
            collect(ctx.project_root, collector)
        except (FlutterBuildError, OSError) as exc:
            console.warn(f"Failed to collect {label} cache, error: {exc}")

    try:
        collector.commit(publisher)
    except FlutterBuildError as exc:
        console.warn(f"Failed to commit cache paths, error: {exc}")


def run_step(
    cfg: StepConfig,
    ctx: Context,
    settings_path: Path,
    env: Mapping[str, str] | None = None,
) -> None:
    publisher = EnvmanPublisher(ctx.runner)

    if cfg.platform in ("ios", "both"):
        try:
            settings_store = FlutterSettingsStore.load(settings_path)
            prepare_codesign(
                ctx.runner,
                ctx.console,
                settings_store,
                cfg.ios_additional_params,
                cfg.ios_codesign_identity,
            )
        except FlutterBuildError as exc:
            raise StepFailed(f" - {exc}") from exc

    exporter = ArtifactExporter(ctx.console, publisher, ctx.deploy_dir)
    for target in cfg.build_targets():
        if not target.buildable(cfg.platform):
            continue
        _build_and_export(ctx, cfg, target, exporter)

    if cfg.cache_level == "all":
        collect_caches(ctx, publisher, env)


def main(
    argv: Iterable[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    runner: CommandRunner | None = None,
) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    environment = dict(os.environ) if env is None else dict(env)
    console = Console(level=args.log or "info")

    try:
        cfg = StepConfig.from_sources(environment, args.config)
    except FlutterBuildError as exc:
        console.error(str(exc))
        return 1

    console.section("Configs:")
    for line in cfg.describe():
        console.info(line)
    cfg.handle_deprecated_inputs(console)
    if args.log is None and cfg.debug_mode:
        console.set_level("debug")

    ctx = Context(
        console=console,
        runner=runner or SubprocessCommandRunner(),
        project_root=cfg.project_location,
        deploy_dir=cfg.deploy_dir,
    )

    settings_path = args.settings or default_settings_path(environment)
    try:
        run_step(cfg, ctx, settings_path, environment)
    except (StepFailed, FlutterBuildError) as exc:
        console.error(str(exc))
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
