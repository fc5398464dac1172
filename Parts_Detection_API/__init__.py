"""
HTTP service around `partscan_kit`: upload an image, get labelled part detections back.
"""

from .config import EnvSettings, ServiceConfig, apply_env_overrides, get_config, load_service_config
from .app import build_pipeline, configure_logging, create_app

__all__ = [
    "EnvSettings",
    "ServiceConfig",
    "apply_env_overrides",
    "get_config",
    "load_service_config",
    "build_pipeline",
    "configure_logging",
    "create_app",
]
