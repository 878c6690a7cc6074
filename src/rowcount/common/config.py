"""Helpers for loading runtime configuration profiles."""
from __future__ import annotations

import codecs
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import BackendError, ErrorCode
from .models import CounterSettings, GlobalSettings, RuntimeConfig

DEFAULT_CONFIG_PATH = Path("config/defaults.json")
DEFAULT_PROFILE = "low_memory"
ALLOWED_ERROR_POLICIES = {"fail-fast", "strict", "replace"}
ALLOWED_OUTPUT_MODES = {"count", "done"}

# Used when no config file is given and config/defaults.json is absent.
BUILTIN_CONFIG: Dict[str, Any] = {
    "version": 1,
    "global": {
        "encoding": "utf-8",
        "error_policy": "fail-fast",
        "output_mode": "count",
    },
    "profiles": {
        "low_memory": {
            "description": "Small reads, frequent progress events",
            "chunk_size": 65_536,
            "has_header": True,
            "progress_every_chunks": 16,
        },
        "workstation": {
            "description": "Large sequential reads for fast disks",
            "chunk_size": 1_048_576,
            "has_header": True,
            "progress_every_chunks": 4,
        },
    },
}


@dataclass(slots=True)
class ConfigDocument:
    source: Path
    version: int
    global_settings: GlobalSettings
    profiles: Dict[str, CounterSettings]


def load_runtime_config(
    profile: str = DEFAULT_PROFILE,
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> RuntimeConfig:
    """Load configuration JSON, validate it, and resolve a specific profile."""

    document = load_config_document(
        profile_name=profile,
        config_path=config_path,
        overrides=overrides,
    )
    try:
        profile_settings = document.profiles[profile]
    except KeyError as exc:  # pragma: no cover - guarded earlier
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Profile '{profile}' not found in {document.source}",
        ) from exc
    return RuntimeConfig(
        global_settings=document.global_settings,
        profile=profile_settings,
        profile_name=profile,
    )


def load_config_document(
    *,
    profile_name: Optional[str] = None,
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> ConfigDocument:
    if config_path is None and not DEFAULT_CONFIG_PATH.is_file():
        cfg_path = Path("<builtin>")
        raw: Dict[str, Any] = BUILTIN_CONFIG
    else:
        cfg_path = config_path or DEFAULT_CONFIG_PATH
        raw = _read_config_json(cfg_path)

    if not isinstance(raw, Mapping):
        raise BackendError(ErrorCode.CONFIG_ERROR, f"Config file '{cfg_path}' must contain an object")

    version = _require_positive_int(raw.get("version"), "version", cfg_path)
    global_section = raw.get("global")
    if not isinstance(global_section, Mapping):
        raise BackendError(ErrorCode.CONFIG_ERROR, f"'global' section missing in {cfg_path}")

    overrides = overrides or {}
    global_data = {**global_section, **(overrides.get("global") or {})}
    global_settings = _build_global_settings(global_data, cfg_path)

    profiles_section = raw.get("profiles")
    if not isinstance(profiles_section, Mapping) or not profiles_section:
        raise BackendError(ErrorCode.CONFIG_ERROR, f"'profiles' section missing in {cfg_path}")

    profile_overrides = overrides.get("profile") or {}
    profiles: Dict[str, CounterSettings] = {}
    for name, profile_data in profiles_section.items():
        if not isinstance(profile_data, Mapping):
            raise BackendError(
                ErrorCode.CONFIG_ERROR,
                f"Profile '{name}' must be an object in {cfg_path}",
            )
        merged = dict(profile_data)
        if profile_name and name == profile_name and profile_overrides:
            merged = {**merged, **profile_overrides}
        profiles[name] = _build_counter_settings(name, merged, cfg_path)

    if profile_name and profile_name not in profiles:
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Profile '{profile_name}' not found in {cfg_path}",
        )

    return ConfigDocument(
        source=cfg_path,
        version=version,
        global_settings=global_settings,
        profiles=profiles,
    )


def error_mode_from_policy(policy: str) -> str:
    """Translate human-friendly error policy into Python's encoding error handler."""

    return "strict" if policy.lower() in {"fail-fast", "strict"} else "replace"


# ---------------------------------------------------------------------------
# Internal helpers


def _read_config_json(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise BackendError(ErrorCode.CONFIG_ERROR, f"Config file '{path}' not found") from exc
    except OSError as exc:  # pragma: no cover - depends on filesystem
        raise BackendError(ErrorCode.CONFIG_ERROR, f"Config file '{path}' is not readable: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise BackendError(ErrorCode.CONFIG_ERROR, f"Config file '{path}' is not valid JSON: {exc}") from exc


def _build_global_settings(data: Mapping[str, Any], source: Path) -> GlobalSettings:
    defaults = GlobalSettings()
    encoding = _require_string(data.get("encoding", defaults.encoding), "global.encoding", source)
    try:
        codecs.lookup(encoding)
    except LookupError as exc:
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Unknown global.encoding '{encoding}' in {source}",
        ) from exc
    error_policy = _normalize_error_policy(data.get("error_policy", defaults.error_policy), source)
    output_mode = _require_string(
        data.get("output_mode", defaults.output_mode), "global.output_mode", source
    ).lower()
    if output_mode not in ALLOWED_OUTPUT_MODES:
        allowed = ", ".join(sorted(ALLOWED_OUTPUT_MODES))
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Unsupported output_mode '{output_mode}' in {source}. Allowed: {allowed}",
        )
    return GlobalSettings(encoding=encoding, error_policy=error_policy, output_mode=output_mode)


def _build_counter_settings(name: str, data: Mapping[str, Any], source: Path) -> CounterSettings:
    prefix = f"profiles.{name}"
    required_fields = ("description", "chunk_size")
    missing = [field for field in required_fields if field not in data]
    if missing:
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Profile '{name}' missing fields {missing} in {source}",
        )

    defaults = CounterSettings()
    return CounterSettings(
        description=_require_string(data.get("description"), f"{prefix}.description", source),
        chunk_size=_require_positive_int(data.get("chunk_size"), f"{prefix}.chunk_size", source),
        has_header=_require_bool(data.get("has_header", defaults.has_header), f"{prefix}.has_header", source),
        progress_every_chunks=_require_positive_int(
            data.get("progress_every_chunks", defaults.progress_every_chunks),
            f"{prefix}.progress_every_chunks",
            source,
        ),
    )


def _normalize_error_policy(value: Any, source: Path) -> str:
    policy = _require_string(value, "global.error_policy", source).lower()
    if policy not in ALLOWED_ERROR_POLICIES:
        allowed = ", ".join(sorted(ALLOWED_ERROR_POLICIES))
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"Unsupported error_policy '{value}' in {source}. Allowed: {allowed}",
        )
    return "fail-fast" if policy in {"fail-fast", "strict"} else "replace"


def _require_string(value: Any, field: str, source: Path) -> str:
    if not isinstance(value, str):
        raise BackendError(ErrorCode.CONFIG_ERROR, f"{field} must be a string in {source}")
    text = value.strip()
    if not text:
        raise BackendError(ErrorCode.CONFIG_ERROR, f"{field} must be non-empty in {source}")
    return text


def _require_bool(value: Any, field: str, source: Path) -> bool:
    if not isinstance(value, bool):
        raise BackendError(ErrorCode.CONFIG_ERROR, f"{field} must be true or false in {source}")
    return value


def _require_positive_int(value: Any, field: str, source: Path) -> int:
    if isinstance(value, bool):
        raise BackendError(ErrorCode.CONFIG_ERROR, f"{field} must be an integer in {source}")
    try:
        num = int(value)
    except (TypeError, ValueError) as exc:
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"{field} must be an integer in {source}",
        ) from exc
    if num <= 0:
        raise BackendError(
            ErrorCode.CONFIG_ERROR,
            f"{field} must be greater than zero in {source}",
        )
    return num
