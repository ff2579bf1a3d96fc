"""Gemini `generateContent` adapter."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from .common import post_json

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def _split_messages(messages: list[dict[str, Any]]) -> tuple[str, list[dict[str, Any]]]:
    """Turn chat-style messages into Gemini `systemInstruction` text and `contents`."""
    system_parts: list[str] = []
    contents: list[dict[str, Any]] = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        text = message.get("content")
        if not isinstance(text, str) or not text.strip():
            continue
        role = str(message.get("role") or "user")
        if role == "system":
            system_parts.append(text)
            continue
        contents.append(
            {
                "role": "model" if role == "assistant" else "user",
                "parts": [{"text": text}],
            }
        )
    return "\n\n".join(system_parts), contents


def _candidate_text(candidate: dict[str, Any]) -> str | None:
    content = candidate.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "".join(texts) if texts else None


def call_gemini(
    *,
    api_key: str,
    model: str,
    messages: list[dict[str, Any]],
    max_output_tokens: int | None = None,
    temperature: float | None = None,
    timeout_sec: int = 60,
    base_url: str = GEMINI_BASE_URL,
) -> dict[str, Any]:
    """Call Gemini and normalize output to the same shape as `call_openrouter`."""
    system_text, contents = _split_messages(messages)
    if not contents:
        raise ValueError("Gemini request needs at least one user message.")

    payload: dict[str, Any] = {"contents": contents}
    if system_text:
        payload["systemInstruction"] = {"parts": [{"text": system_text}]}
    generation_config: dict[str, Any] = {}
    if max_output_tokens is not None:
        generation_config["maxOutputTokens"] = int(max_output_tokens)
    if temperature is not None:
        generation_config["temperature"] = float(temperature)
    if generation_config:
        payload["generationConfig"] = generation_config

    url = f"{base_url.rstrip('/')}/models/{quote(model, safe='.-_')}:generateContent"
    raw = post_json(url, headers={"x-goog-api-key": api_key}, payload=payload, timeout_sec=timeout_sec)

    candidates = raw.get("candidates")
    first = candidates[0] if isinstance(candidates, list) and candidates else {}
    if not isinstance(first, dict):
        first = {}
    text = _candidate_text(first)
    if text is None:
        feedback = raw.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        raise ValueError(f"Gemini returned no text (block reason: {reason or first.get('finishReason') or 'unknown'}).")

    return {
        "ok": True,
        "provider": "gemini",
        "model": model,
        "text": text,
        "finish_reason": first.get("finishReason"),
        "usage": raw.get("usageMetadata"),
        "raw": raw,
        "error": None,
    }
