"""Step configuration: inputs from the environment and optional config files."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from core.config_loader import load_config_file, merge_mappings, normalize_string_list

from .artifacts import OutputKind
from .build import BuildTarget
from .context import Console
from .errors import ConfigError

DEPLOY_DIR_ENV = "BITRISE_DEPLOY_DIR"
DEPRECATED_BUNDLE_PATTERN_DEFAULT = "*build/app/outputs/bundle/*/*.aab"

PLATFORMS = ("both", "ios", "android")
CACHE_LEVELS = ("all", "none")
_BOOLEANS = {"true": True, "false": False}
_IOS_OUTPUT_TYPES = {"app": OutputKind.IOS_APP, "archive": OutputKind.ARCHIVE}
_ANDROID_OUTPUT_TYPES = {"apk": OutputKind.APK, "appbundle": OutputKind.APP_BUNDLE}

INPUT_NAMES = (
    "additional_build_params",
    "ios_additional_params",
    "android_additional_params",
    "platform",
    "ios_output_type",
    "ios_output_pattern",
    "android_output_type",
    "android_output_pattern",
    "ios_codesign_identity",
    "project_location",
    "is_debug_mode",
    "cache_level",
    "android_bundle_output_pattern",
)


def _coerce(name: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        try:
            return "\n".join(normalize_string_list(value, field_name=name))
        except TypeError as exc:
            raise ConfigError(f"Issue with input: {exc}") from exc
    return str(value)


def _choice(inputs: Mapping[str, str], name: str, options: Iterable[str], default: str) -> str:
    value = inputs.get(name) or default
    allowed = tuple(options)
    if value not in allowed:
        raise ConfigError(
            f"Issue with input: {name}: value {value!r} is not allowed, use one of: {', '.join(allowed)}")
    return value


def _required(inputs: Mapping[str, str], name: str) -> str:
    value = inputs.get(name, "")
    if not value.strip():
        raise ConfigError(f"Issue with input: {name}: required variable is not present")
    return value


def _patterns(value: str) -> Tuple[str, ...]:
    return tuple(normalize_string_list(value))


@dataclass(slots=True)
class StepConfig:
    additional_build_params: str
    ios_additional_params: str
    android_additional_params: str
    platform: str
    ios_output_type: OutputKind
    ios_output_pattern: str
    android_output_type: OutputKind
    android_output_pattern: str
    ios_codesign_identity: str
    project_location: Path
    debug_mode: bool
    cache_level: str
    deploy_dir: Path
    android_bundle_output_pattern: str = ""

    @staticmethod
    def collect_inputs(
        env: Mapping[str, str],
        config_file: Path | None = None,
    ) -> Dict[str, str]:
        """Merge file inputs with environment inputs, the environment winning.

        A config file may hold the inputs at its root or in an ``inputs``
        table.
        """
        file_inputs: Dict[str, str] = {}
        if config_file is not None:
            try:
                data = load_config_file(Path(config_file))
            except (OSError, ValueError, TypeError) as exc:
                raise ConfigError(f"Failed to load config file {config_file}: {exc}") from exc
            section = data.get("inputs", data)
            if not isinstance(section, Mapping):
                raise ConfigError(f"'inputs' in {config_file} must be a table")
            for name in INPUT_NAMES:
                if name in section:
                    file_inputs[name] = _coerce(name, section[name])

        env_inputs = {name: env[name] for name in INPUT_NAMES if env.get(name)}
        return merge_mappings(file_inputs, env_inputs)

    @classmethod
    def from_sources(
        cls,
        env: Mapping[str, str],
        config_file: Path | None = None,
        cwd: Path | None = None,
    ) -> "StepConfig":
        inputs = cls.collect_inputs(env, config_file)
        base = Path(cwd) if cwd is not None else Path.cwd()

        project_location = Path(inputs.get("project_location") or ".").expanduser()
        if not project_location.is_absolute():
            project_location = base / project_location
        project_location = project_location.resolve()
        if not project_location.is_dir():
            raise ConfigError(
                f"Issue with input: project_location: directory does not exist: {project_location}")

        deploy_dir = Path(env.get(DEPLOY_DIR_ENV) or base / "_deploy").expanduser()
        if not deploy_dir.is_absolute():
            deploy_dir = base / deploy_dir

        return cls(
            additional_build_params=inputs.get("additional_build_params", ""),
            ios_additional_params=inputs.get("ios_additional_params", ""),
            android_additional_params=inputs.get("android_additional_params", ""),
            platform=_choice(inputs, "platform", PLATFORMS, "both"),
            ios_output_type=_IOS_OUTPUT_TYPES[
                _choice(inputs, "ios_output_type", _IOS_OUTPUT_TYPES, "app")],
            ios_output_pattern=_required(inputs, "ios_output_pattern"),
            android_output_type=_ANDROID_OUTPUT_TYPES[
                _choice(inputs, "android_output_type", _ANDROID_OUTPUT_TYPES, "apk")],
            android_output_pattern=_required(inputs, "android_output_pattern"),
            ios_codesign_identity=inputs.get("ios_codesign_identity", ""),
            project_location=project_location,
            debug_mode=_BOOLEANS[_choice(inputs, "is_debug_mode", _BOOLEANS, "false")],
            cache_level=_choice(inputs, "cache_level", CACHE_LEVELS, "all"),
            deploy_dir=deploy_dir,
            android_bundle_output_pattern=inputs.get("android_bundle_output_pattern", ""),
        )

    def handle_deprecated_inputs(self, console: Console) -> None:
        pattern = self.android_bundle_output_pattern
        if not pattern or pattern == DEPRECATED_BUNDLE_PATTERN_DEFAULT:
            return
        console.warn(
            "step input 'App bundle output pattern' (android_bundle_output_pattern) is deprecated, "
            "use 'Output (.apk, .aab) pattern' (android_output_pattern) instead!")
        console.info(
            "Using 'App bundle output pattern' (android_bundle_output_pattern) instead of "
            "'Output (.apk, .aab) pattern' (android_output_pattern).")
        console.info(
            "If you don't want to use 'App bundle output pattern' "
            "(android_bundle_output_pattern), empty it's value.")
        self.android_output_pattern = pattern

    def describe(self) -> List[str]:
        return [
            f"- {name}: {value}"
            for name, value in (
                ("additional_build_params", self.additional_build_params),
                ("ios_additional_params", self.ios_additional_params),
                ("android_additional_params", self.android_additional_params),
                ("platform", self.platform),
                ("ios_output_type", self.ios_output_type.value),
                ("ios_output_pattern", self.ios_output_pattern),
                ("android_output_type", self.android_output_type.value),
                ("android_output_pattern", self.android_output_pattern),
                ("ios_codesign_identity", self.ios_codesign_identity),
                ("project_location", self.project_location),
                ("is_debug_mode", str(self.debug_mode).lower()),
                ("cache_level", self.cache_level),
            )
        ]

    def build_targets(self) -> List[BuildTarget]:
        """iOS first, then Android; callers skip the ones not selected."""
        return [
            BuildTarget(
                display_name="iOS",
                output_kind=self.ios_output_type,
                platform_selectors=("both", "ios"),
                output_patterns=_patterns(self.ios_output_pattern),
                project_location=self.project_location,
                additional_parameters=f"{self.additional_build_params} {self.ios_additional_params}".strip(),
            ),
            BuildTarget(
                display_name="Android",
                output_kind=self.android_output_type,
                platform_selectors=("both", "android"),
                output_patterns=_patterns(self.android_output_pattern),
                project_location=self.project_location,
                additional_parameters=f"{self.additional_build_params} {self.android_additional_params}".strip(),
            ),
        ]
