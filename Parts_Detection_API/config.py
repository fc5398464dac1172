from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

from partscan_kit.constants import CONFIDENCE_THRESHOLD, IOU_THRESHOLD


ENV_PREFIX = "PARTSCAN_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ServiceConfig:
    model_path: str = "Models/best.onnx"
    metadata_path: Optional[str] = None
    onnx_providers: Optional[Tuple[str, ...]] = None
    use_coreml: bool = False
    conf_threshold: float = CONFIDENCE_THRESHOLD
    iou_threshold: float = IOU_THRESHOLD
    clamp_boxes: bool = True
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_origins: Tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    # Load the model at startup instead of on the first request.
    eager_load: bool = False

    def __post_init__(self) -> None:
        if not self.model_path.strip():
            raise ValueError("model_path must be a non-empty string")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError("conf_threshold must be in [0, 1]")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in (0, 1]")
        if self.max_upload_bytes <= 0:
            raise ValueError("max_upload_bytes must be > 0")
        if not 0 < self.port < 65536:
            raise ValueError("port must be in 1..65535")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_LOG_LEVELS}")


_STR_KEYS = {"model_path", "metadata_path", "host", "log_level"}
_FLOAT_KEYS = {"conf_threshold", "iou_threshold"}
_INT_KEYS = {"max_upload_bytes", "port"}
_BOOL_KEYS = {"use_coreml", "clamp_boxes", "eager_load"}
_LIST_KEYS = {"onnx_providers", "allowed_origins"}


def _coerce_str_tuple(value: object, key: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        cleaned = tuple(item.strip() for item in value)
        if not cleaned or any(not item for item in cleaned):
            raise ValueError(f"{key} must not contain empty strings")
        return cleaned
    raise ValueError(f"{key} must be a string or list of strings")


def _coerce(key: str, value: object) -> Any:
    if key in _STR_KEYS:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{key} must be a non-empty string")
        return value
    if key in _BOOL_KEYS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean")
        return value
    if key in _INT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be an integer")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{key} must be an integer")
        return int(value)
    if key in _FLOAT_KEYS:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number")
        return float(value)
    if key in _LIST_KEYS:
        return _coerce_str_tuple(value, key)
    raise ValueError(f"Unsupported config key: {key}")


def config_from_mapping(payload: Mapping[str, object], base: ServiceConfig = ServiceConfig()) -> ServiceConfig:
    allowed = {f.name for f in fields(ServiceConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    updates: Dict[str, Any] = {}
    for key, value in payload.items():
        if value is None:
            continue
        updates[key] = _coerce(key, value)
    return replace(base, **updates)


def load_service_config(path: Path, base: ServiceConfig = ServiceConfig()) -> ServiceConfig:
    if not path.exists():
        raise FileNotFoundError(f"Service config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid service config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Service config must be a JSON object")
    return config_from_mapping(payload, base)


class EnvSettings(BaseSettings):
    """
    `PARTSCAN_*` environment overrides, e.g. PARTSCAN_MODEL_PATH or PARTSCAN_CLAMP_BOXES=false.

    List fields take JSON arrays (PARTSCAN_ONNX_PROVIDERS='["CPUExecutionProvider"]').
    PARTSCAN_CONFIG names an optional JSON service config applied before these.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        protected_namespaces=(),
    )

    config: Optional[Path] = None
    model_path: Optional[str] = None
    metadata_path: Optional[str] = None
    onnx_providers: Optional[List[str]] = None
    use_coreml: Optional[bool] = None
    conf_threshold: Optional[float] = None
    iou_threshold: Optional[float] = None
    clamp_boxes: Optional[bool] = None
    max_upload_bytes: Optional[int] = None
    allowed_origins: Optional[List[str]] = None
    host: Optional[str] = None
    port: Optional[int] = None
    log_level: Optional[str] = None
    eager_load: Optional[bool] = None

    def overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"config"})


def apply_env_overrides(cfg: ServiceConfig, settings: Optional[EnvSettings] = None) -> ServiceConfig:
    settings = settings if settings is not None else EnvSettings()
    return config_from_mapping(settings.overrides(), cfg)


def get_config(settings: Optional[EnvSettings] = None) -> ServiceConfig:
    """
    Defaults, then the JSON file named by PARTSCAN_CONFIG (if set), then env overrides.
    """

    settings = settings if settings is not None else EnvSettings()
    cfg = ServiceConfig()
    if settings.config is not None:
        cfg = load_service_config(settings.config, cfg)
    return apply_env_overrides(cfg, settings)
