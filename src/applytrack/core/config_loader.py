"""Load and query the applytrack JSON config file.

The file holds infrastructure settings only (OAuth client, spreadsheet ID,
timeouts, model providers). Per-user tracker settings live in the Settings tab
of the spreadsheet and are read by `core.settings`.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("config/config.json")
CONFIG_PATH_ENV = "APPLYTRACK_CONFIG_PATH"
DEFAULT_DAEMON_INTERVALS = {
    "cover_letter_interval_sec": 60.0,
    "job_search_interval_sec": 0.0,
}
# (path, mtime_ns) -> parsed payload
_CONFIG_CACHE: dict[Path, tuple[int, dict[str, Any]]] = {}


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[3]


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    """Explicit argument, then `APPLYTRACK_CONFIG_PATH`, then `config/config.json`.

    Relative paths are resolved against the repository root.
    """
    chosen = config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
    path = Path(chosen)
    if not path.is_absolute():
        path = _repo_root() / path
    return path.resolve()


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in config file: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Config root must be a JSON object: {path}")
    return payload


def load_config(config_path: str | Path | None = None, *, use_cache: bool = True) -> dict[str, Any]:
    """Return the parsed config, re-reading the file only when its mtime changes."""
    path = resolve_config_path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    mtime_ns = path.stat().st_mtime_ns
    cached = _CONFIG_CACHE.get(path)
    if use_cache and cached is not None and cached[0] == mtime_ns:
        return cached[1]

    payload = _read_config_file(path)
    _CONFIG_CACHE[path] = (mtime_ns, payload)
    return payload


def clear_config_cache() -> None:
    _CONFIG_CACHE.clear()


def load_config_or_empty() -> dict[str, Any]:
    """Return the config payload, or `{}` when the file is missing or invalid."""
    try:
        return load_config()
    except (FileNotFoundError, ValueError):
        return {}


def _section(payload: dict[str, Any], *keys: str) -> dict[str, Any]:
    node: Any = payload
    for key in keys:
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def get_tool_block(name: str, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return `tool_profiles.user_specific.<name>` or an empty dict."""
    payload = config if config is not None else load_config_or_empty()
    return _section(payload, "tool_profiles", "user_specific", name)


def get_logging_config(config: dict[str, Any] | None = None) -> dict[str, Any]:
    payload = config if config is not None else load_config_or_empty()
    return _section(payload, "logging")


def get_daemon_config(config: dict[str, Any] | None = None) -> dict[str, float]:
    """Scheduler intervals in seconds; invalid or negative values fall back to defaults."""
    payload = config if config is not None else load_config_or_empty()
    block = _section(payload, "daemon")
    out: dict[str, float] = {}
    for key, default in DEFAULT_DAEMON_INTERVALS.items():
        value = block.get(key, default)
        valid = isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0
        out[key] = float(value) if valid else default
    return out


def get_model_config(model_ref: str | None = None, config: dict[str, Any] | None = None) -> tuple[str, dict[str, Any]]:
    """Resolve `(model_id, model_payload)` by model id or alias.

    With no reference, `default_model_alias` is used. Aliases must be unique.
    """
    payload = config or load_config()
    models = payload.get("models")
    if not isinstance(models, dict):
        raise ValueError("Config models must be a JSON object keyed by model id.")

    ref = model_ref
    if ref is None:
        ref = payload.get("default_model_alias")
        if not isinstance(ref, str) or not ref:
            raise ValueError("Config requires non-empty string `default_model_alias`.")
    elif isinstance(models.get(ref), dict):
        return ref, models[ref]

    matches = [(model_id, model) for model_id, model in models.items() if isinstance(model, dict) and model.get("alias") == ref]
    if not matches:
        raise ValueError(f"No model found for alias '{ref}'.")
    if len(matches) > 1:
        raise ValueError(f"Alias '{ref}' is not unique across models.")
    return matches[0]


def get_provider_config(provider_name: str, config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return the `model_providers.<provider_name>` block."""
    payload = config or load_config()
    providers = payload.get("model_providers")
    if not isinstance(providers, dict):
        raise ValueError("Config model_providers must be a JSON object.")
    provider = providers.get(provider_name)
    if not isinstance(provider, dict):
        raise ValueError(f"Model provider '{provider_name}' is not defined.")
    return provider
