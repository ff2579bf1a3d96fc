"""OpenRouter chat-completions adapter (fallback provider for cover letters)."""

from __future__ import annotations

from typing import Any

from .common import post_json

OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"


def _message_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    # Some upstream models return content as a list of typed parts.
    if isinstance(content, list):
        texts = [part.get("text") for part in content if isinstance(part, dict) and isinstance(part.get("text"), str)]
        return "".join(texts) if texts else None
    return None


def call_openrouter(
    *,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    max_output_tokens: int | None = None,
    temperature: float | None = None,
    timeout_sec: int = 30,
    base_url: str = OPENROUTER_CHAT_URL,
    referer: str | None = None,
    app_title: str | None = None,
) -> dict[str, Any]:
    """Call OpenRouter and normalize output to the shape `call_gemini` returns."""
    headers = {"Authorization": f"Bearer {api_key}"}
    if referer:
        headers["HTTP-Referer"] = referer
    if app_title:
        headers["X-Title"] = app_title

    body: dict[str, Any] = {"model": model, "messages": messages}
    if max_output_tokens is not None:
        body["max_tokens"] = int(max_output_tokens)
    if temperature is not None:
        body["temperature"] = float(temperature)

    raw = post_json(base_url, headers=headers, payload=body, timeout_sec=timeout_sec)
    upstream_error = raw.get("error")
    if isinstance(upstream_error, dict):
        code = upstream_error.get("code")
        raise RuntimeError(f"HTTP {code}: {upstream_error.get('message')}" if isinstance(code, int) else str(upstream_error))

    choices = raw.get("choices")
    choice = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
    message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
    text = _message_text(message.get("content"))
    if not text:
        raise ValueError(f"OpenRouter returned no text (finish reason: {choice.get('finish_reason') or 'unknown'}).")

    return {
        "ok": True,
        "provider": "openrouter",
        "model": raw.get("model") or model,
        "text": text,
        "finish_reason": choice.get("finish_reason"),
        "usage": raw.get("usage"),
        "raw": raw,
        "error": None,
    }
