"""Google OAuth access-token helpers (refresh-token flow with an on-disk cache)."""

from __future__ import annotations

import json
import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from src.applytrack.core.config_loader import get_tool_block

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_TOKEN_PATH = "state/google_token.json"
DEFAULT_TIMEOUT_SEC = 15
EXPIRY_SKEW_SEC = 60
CONFIG_PREFIX = "tool_profiles.user_specific.google_oauth"


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[4]


def _token_path(raw_path: Any) -> Path:
    text = raw_path.strip() if isinstance(raw_path, str) and raw_path.strip() else DEFAULT_TOKEN_PATH
    path = Path(text)
    if not path.is_absolute():
        path = _repo_root() / path
    return path.resolve()


def _string_or_none(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _oauth_settings() -> dict[str, Any]:
    block = get_tool_block("google_oauth")
    scopes = block.get("scopes")
    timeout = block.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    settings: dict[str, Any] = {
        "client_id": _string_or_none(block.get("client_id")),
        "client_secret": _string_or_none(block.get("client_secret")),
        "refresh_token": _string_or_none(block.get("refresh_token")),
        "token_uri": _string_or_none(block.get("token_uri")) or DEFAULT_TOKEN_URI,
        "scopes": [scope for scope in scopes if isinstance(scope, str) and scope.strip()] if isinstance(scopes, list) else [],
        "token_path": _token_path(block.get("token_path")),
        "timeout_sec": int(timeout) if isinstance(timeout, int) else DEFAULT_TIMEOUT_SEC,
    }
    missing = [f"{CONFIG_PREFIX}.{key}" for key in ("client_id", "client_secret") if not settings[key]]
    if not block:
        missing.insert(0, CONFIG_PREFIX)
    settings["missing"] = missing
    return settings


def _load_cached_token(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.warning("Ignoring unreadable Google token cache at %s", path)
        return {}
    return payload if isinstance(payload, dict) else {}


def _store_cached_token(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_name(f"{path.name}.tmp")
    staging.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    staging.replace(path)


def _iso_utc(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _is_fresh(cached: dict[str, Any]) -> bool:
    token = cached.get("access_token")
    expires = cached.get("expires_at_epoch")
    if not isinstance(token, str) or not token.strip() or not isinstance(expires, int):
        return False
    return expires > int(time.time()) + EXPIRY_SKEW_SEC


def _describe_http_error(exc: HTTPError) -> tuple[str, str]:
    code = "google_oauth_http_error"
    message = f"OAuth token request failed with HTTP {exc.code}."
    try:
        payload = json.loads(exc.read().decode("utf-8"))
    except (OSError, ValueError):
        payload = None
    if isinstance(payload, dict):
        if isinstance(payload.get("error"), str) and payload["error"]:
            code = payload["error"]
        if isinstance(payload.get("error_description"), str) and payload["error_description"]:
            message = payload["error_description"]
    if code == "invalid_grant":
        message = "Google rejected the refresh token; run the OAuth consent flow again."
    return message, code


def _token_failure(message: str, code: str) -> dict[str, Any]:
    return {"ok": False, "error": message, "error_code": code}


def _request_access_token(settings: dict[str, Any], refresh_token: str) -> dict[str, Any]:
    form = {
        "client_id": settings["client_id"],
        "client_secret": settings["client_secret"],
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }
    if settings["scopes"]:
        form["scope"] = " ".join(settings["scopes"])

    request = Request(
        settings["token_uri"],
        data=urlencode(form).encode("utf-8"),
        headers={"Content-Type": "application/x-www-form-urlencoded", "Accept": "application/json"},
        method="POST",
    )
    try:
        with urlopen(request, timeout=settings["timeout_sec"]) as response:
            payload = json.loads(response.read().decode("utf-8"))
    except HTTPError as exc:
        return _token_failure(*_describe_http_error(exc))
    except URLError:
        return _token_failure("Could not reach the Google token endpoint.", "network_error")
    except json.JSONDecodeError:
        return _token_failure("Token endpoint returned non-JSON content.", "invalid_response")

    if not isinstance(payload, dict):
        return _token_failure("Token endpoint returned a non-object payload.", "invalid_response")
    if not _string_or_none(payload.get("access_token")):
        return _token_failure("Token endpoint response has no access_token.", "invalid_response")
    lifetime = payload.get("expires_in")
    if not isinstance(lifetime, int) or lifetime <= 0:
        return _token_failure("Token endpoint response has no positive expires_in.", "invalid_response")
    return {"ok": True, **payload}


def _error_payload(message: str, *, error_code: str | None = None) -> dict[str, Any]:
    return {
        "ok": False,
        "source": "google_oauth_error",
        "error": message,
        "error_code": error_code,
    }


def get_google_access_token(*, force_refresh: bool = False) -> dict[str, Any]:
    """Return a usable access token, refreshing and caching it when needed."""
    settings = _oauth_settings()
    if settings["missing"]:
        return _error_payload(
            "Missing Google OAuth config fields: " + ", ".join(settings["missing"]),
            error_code="config_missing",
        )

    token_path: Path = settings["token_path"]
    cached = _load_cached_token(token_path)
    if not force_refresh and _is_fresh(cached):
        return {
            "ok": True,
            "source": "google_oauth_cache",
            "access_token": cached["access_token"],
            "expires_at": cached.get("expires_at"),
            "error": None,
        }

    refresh_token = _string_or_none(cached.get("refresh_token")) or settings["refresh_token"]
    if not refresh_token:
        return _error_payload(
            f"No refresh token available. Configure {CONFIG_PREFIX}.refresh_token.",
            error_code="refresh_token_missing",
        )

    refreshed = _request_access_token(settings, refresh_token)
    if not refreshed.get("ok"):
        logger.error("Google token refresh failed: %s", refreshed.get("error"))
        return _error_payload(str(refreshed.get("error")), error_code=refreshed.get("error_code"))

    now = time.time()
    expires_epoch = int(now) + int(refreshed["expires_in"])
    state = {
        "access_token": refreshed["access_token"],
        "refresh_token": _string_or_none(refreshed.get("refresh_token")) or refresh_token,
        "token_type": refreshed.get("token_type") or "Bearer",
        "scope": refreshed.get("scope"),
        "expires_at": _iso_utc(expires_epoch),
        "expires_at_epoch": expires_epoch,
        "updated_at": _iso_utc(now),
    }
    try:
        _store_cached_token(token_path, state)
    except OSError:
        return _error_payload("Failed to persist Google token state.", error_code="token_persist_failed")

    logger.info("Refreshed Google access token (expires %s)", state["expires_at"])
    return {
        "ok": True,
        "source": "google_oauth_refreshed",
        "access_token": state["access_token"],
        "expires_at": state["expires_at"],
        "error": None,
    }
