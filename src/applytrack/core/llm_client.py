"""Provider-agnostic entrypoint for cover-letter generation calls."""

from __future__ import annotations

import logging
import re
import socket
from time import sleep
from typing import Any, Callable, Iterator
from urllib.error import HTTPError, URLError

from .config_loader import get_model_config, get_provider_config, load_config
from .providers import call_gemini, call_openrouter

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFF_SCHEDULE_SEC = (1.0, 3.0, 5.0)
DEFAULT_TIMEOUT_SEC = 60
RETRYABLE_HTTP_CODES = {408, 425, 429, 500, 502, 503, 504}
_HTTP_CODE_PATTERN = re.compile(r"\bHTTP\s+(\d{3})\b")
_TRANSIENT_NETWORK_HINTS = ("timed out", "temporary failure", "name resolution", "connection reset")


class ProviderCallFailed(Exception):
    """Raised by `_call_with_retry` once attempts are exhausted or the error is permanent."""

    def __init__(self, cause: Exception, *, attempts_used: int, attempts_configured: int, retryable: bool) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.attempts_used = attempts_used
        self.attempts_configured = attempts_configured
        self.retryable = retryable


def _provider_fn(provider_name: str) -> Callable[..., dict[str, Any]] | None:
    if provider_name == "gemini":
        return call_gemini
    if provider_name == "openrouter":
        return call_openrouter
    return None


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _is_retryable_provider_error(exc: Exception) -> bool:
    """Transient: HTTP 408/425/429/5xx (raised directly or as `HTTP <code>:` text) and network errors."""
    for current in _causes(exc):
        if isinstance(current, HTTPError):
            return current.code in RETRYABLE_HTTP_CODES
        if isinstance(current, URLError):
            reason = current.reason
            if isinstance(reason, str):
                return any(hint in reason.lower() for hint in _TRANSIENT_NETWORK_HINTS)
            return reason is None or isinstance(reason, (socket.gaierror, OSError))
        if isinstance(current, (TimeoutError, ConnectionError)):
            return True
        match = _HTTP_CODE_PATTERN.search(str(current))
        if match:
            return int(match.group(1)) in RETRYABLE_HTTP_CODES
    return False


def _retry_policy(provider_cfg: dict[str, Any]) -> tuple[int, list[float]]:
    raw_schedule = provider_cfg.get("retry_backoff_schedule_sec")
    schedule: list[float] = []
    if isinstance(raw_schedule, list):
        schedule = [float(v) for v in raw_schedule if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0]
    if not schedule:
        schedule = list(DEFAULT_RETRY_BACKOFF_SCHEDULE_SEC)

    attempts = provider_cfg.get("retry_attempts")
    if not isinstance(attempts, int) or isinstance(attempts, bool) or attempts < 1:
        attempts = len(schedule) + 1
    return attempts, schedule


def _call_with_retry(
    fn: Callable[..., dict[str, Any]],
    *,
    attempts: int,
    backoff_schedule_sec: list[float],
    **kwargs: Any,
) -> tuple[dict[str, Any], int]:
    """Return `(response, attempts_used)`; raise `ProviderCallFailed` otherwise."""
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn(**kwargs), attempt
        except Exception as exc:
            retryable = _is_retryable_provider_error(exc)
            if not retryable or attempt >= attempts:
                raise ProviderCallFailed(
                    exc,
                    attempts_used=attempt,
                    attempts_configured=attempts,
                    retryable=retryable,
                ) from exc
            delay = backoff_schedule_sec[min(attempt, len(backoff_schedule_sec)) - 1] if backoff_schedule_sec else 0.0
            logger.warning("Model call attempt %d/%d failed (%s); retrying in %.1fs", attempt, attempts, exc, delay)
            if delay > 0:
                sleep(delay)


def _error_result(provider: str | None, model: str | None, message: str, **extra: Any) -> dict[str, Any]:
    return {
        "ok": False,
        "provider": provider,
        "model": model,
        "text": None,
        "finish_reason": None,
        "usage": None,
        "raw": None,
        "error": message,
        **extra,
    }


def call_llm(
    *,
    messages: list[dict[str, Any]],
    model: str | None = None,
    api_key: str | None = None,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    timeout_sec: int | None = None,
) -> dict[str, Any]:
    """Resolve the model from config and run one completion with retries.

    `api_key` (the Settings-tab key) takes precedence over the provider's
    configured `apikey`. Never raises; failures come back as `ok: False`.
    """
    try:
        config = load_config()
        model_id, model_cfg = get_model_config(model, config)
    except (FileNotFoundError, ValueError) as exc:
        return _error_result(None, model, f"LLM config error: {exc}")

    provider_name = model_cfg.get("provider")
    if not isinstance(provider_name, str) or not provider_name:
        return _error_result(None, model_id, f"Model '{model_id}' missing provider.")
    fn = _provider_fn(provider_name)
    if fn is None:
        return _error_result(provider_name, model_id, f"Unsupported provider '{provider_name}'.")
    endpoint = model_cfg.get("endpoint")
    if not isinstance(endpoint, str) or not endpoint:
        return _error_result(provider_name, model_id, f"Model '{model_id}' missing endpoint.")

    try:
        provider_cfg = get_provider_config(provider_name, config)
    except ValueError:
        provider_cfg = {}
    key = api_key if isinstance(api_key, str) and api_key.strip() else provider_cfg.get("apikey")
    if not isinstance(key, str) or not key.strip():
        return _error_result(provider_name, model_id, f"API key missing for provider '{provider_name}'.")

    if timeout_sec is None:
        configured_timeout = provider_cfg.get("timeout_sec")
        timeout_sec = configured_timeout if isinstance(configured_timeout, int) else DEFAULT_TIMEOUT_SEC
    if max_output_tokens is None and isinstance(model_cfg.get("max_output_tokens"), int):
        max_output_tokens = model_cfg["max_output_tokens"]

    request: dict[str, Any] = {
        "api_key": key.strip(),
        "model": endpoint,
        "messages": messages,
        "max_output_tokens": max_output_tokens,
        "temperature": temperature,
        "timeout_sec": timeout_sec,
    }
    if isinstance(provider_cfg.get("base_url"), str) and provider_cfg["base_url"].strip():
        request["base_url"] = provider_cfg["base_url"].strip()
    if provider_name == "openrouter":
        request["referer"] = provider_cfg.get("referer")
        request["app_title"] = provider_cfg.get("app_title")

    attempts, schedule = _retry_policy(provider_cfg)
    logger.debug("Calling %s model %s (up to %d attempts)", provider_name, endpoint, attempts)
    try:
        response, attempts_used = _call_with_retry(fn, attempts=attempts, backoff_schedule_sec=schedule, **request)
    except ProviderCallFailed as failure:
        logger.error("Model call to %s failed after %d attempt(s): %s", provider_name, failure.attempts_used, failure.cause)
        return _error_result(
            provider_name,
            model_id,
            str(failure.cause),
            attempts_used=failure.attempts_used,
            attempts_configured=failure.attempts_configured,
            retryable_error=failure.retryable,
            retry_backoff_schedule_sec=schedule,
        )

    return {
        **response,
        "attempts_used": attempts_used,
        "attempts_configured": attempts,
        "retryable_error": False,
    }
