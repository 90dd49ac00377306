"""YAML config loader with environment overrides and runtime get/set."""

import json
import os
from pathlib import Path
from typing import Any

import yaml

from weatherdash.config.schema import DashboardConfig

ENV_UV_API_KEY = "OPENWEATHER_API_KEY"
ENV_NWS_USER_AGENT = "NWS_USER_AGENT"


def load_config(
    path: str | Path | None = None, environ: dict[str, str] | None = None
) -> DashboardConfig:
    """Load and validate config from a YAML file.

    A missing path (or a path that does not exist) yields the defaults.
    ``OPENWEATHER_API_KEY`` and ``NWS_USER_AGENT`` override the file.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    api_key = env.get(ENV_UV_API_KEY)
    if api_key:
        raw.setdefault("uv", {})["api_key"] = api_key
    user_agent = env.get(ENV_NWS_USER_AGENT)
    if user_agent:
        raw.setdefault("nws", {})["user_agent"] = user_agent

    return DashboardConfig(**raw)


def get_config_value(config: DashboardConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'refresh.interval_seconds'."""
    obj: Any = config
    for part in dotted_key.split("."):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict) and part in obj:
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj


def set_config_value(
    config: DashboardConfig, dotted_key: str, value: Any
) -> DashboardConfig:
    """Set a config value by dotted key path and re-validate.

    Returns a new DashboardConfig instance.
    """
    data = json.loads(config.model_dump_json())
    parts = dotted_key.split(".")
    target = data
    for part in parts[:-1]:
        if part not in target:
            raise KeyError(f"Config key not found: {dotted_key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Config key not found: {dotted_key}")
    old_value = target[parts[-1]]
    if isinstance(value, str):
        if isinstance(old_value, bool):
            value = value.lower() in ("1", "true", "yes", "on")
        elif isinstance(old_value, int):
            value = int(value)
        elif isinstance(old_value, float):
            value = float(value)
        elif isinstance(old_value, list):
            value = [item.strip() for item in value.split(",") if item.strip()]
    target[parts[-1]] = value
    return DashboardConfig(**data)


def mask_secrets(config: DashboardConfig) -> dict[str, Any]:
    """Config as a plain dict with the UV API key redacted."""
    data = json.loads(config.model_dump_json())
    if data["uv"]["api_key"]:
        data["uv"]["api_key"] = "***"
    return data
