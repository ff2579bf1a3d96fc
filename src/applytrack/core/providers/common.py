"""HTTP plumbing shared by the generative-text provider adapters."""

from __future__ import annotations

import json
from typing import Any
from urllib.error import HTTPError
from urllib.request import Request, urlopen


def _error_detail(body: str, fallback: str) -> str:
    detail = body.strip() or fallback
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return detail
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
        parsed = parsed[0]
    if not isinstance(parsed, dict):
        return detail
    err = parsed.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or err.get("status") or err.get("code") or detail)
    if isinstance(err, str):
        return err
    if isinstance(parsed.get("message"), str):
        return parsed["message"]
    return detail


def post_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int) -> dict[str, Any]:
    """POST JSON and return the decoded object.

    HTTP failures are re-raised as `RuntimeError("HTTP <code>: <detail>")` so the
    retry classifier in `llm_client` can read the status code from the text.
    """
    request_headers = {"Content-Type": "application/json", **headers}
    req = Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers=request_headers,
        method="POST",
    )
    try:
        with urlopen(req, timeout=timeout_sec) as response:
            body = response.read().decode("utf-8")
    except HTTPError as exc:
        raw = exc.read().decode("utf-8", errors="replace")
        raise RuntimeError(f"HTTP {exc.code}: {_error_detail(raw, str(exc))}") from exc
    parsed = json.loads(body)
    if not isinstance(parsed, dict):
        raise ValueError("Provider response must be a JSON object.")
    return parsed
