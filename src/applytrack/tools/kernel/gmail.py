"""Gmail `messages.send` helper for notification emails."""

from __future__ import annotations

import base64
import json
import logging
from email.message import EmailMessage
from typing import Any
from urllib.request import Request, urlopen

from src.applytrack.core.config_loader import get_tool_block
from src.applytrack.tools.kernel.google_auth import get_google_access_token

logger = logging.getLogger(__name__)

GMAIL_SEND_URL = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
DEFAULT_TIMEOUT_SEC = 15


def _gmail_settings() -> dict[str, Any]:
    block = get_tool_block("gmail")
    timeout_sec = block.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    sender = block.get("sender")
    return {
        "timeout_sec": int(timeout_sec) if isinstance(timeout_sec, int) else DEFAULT_TIMEOUT_SEC,
        "sender": sender.strip() if isinstance(sender, str) and sender.strip() else None,
    }


def _post_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int) -> dict[str, Any]:
    request_headers = dict(headers)
    request_headers["Content-Type"] = "application/json"
    request = Request(url, data=json.dumps(payload).encode("utf-8"), headers=request_headers, method="POST")
    with urlopen(request, timeout=timeout_sec) as response:
        body = response.read().decode("utf-8")
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Gmail response must be a JSON object.")
    return data


def build_raw_message(*, to: str, subject: str, body: str, sender: str | None = None) -> str:
    """Return the base64url-encoded RFC 822 message Gmail expects in `raw`."""
    message = EmailMessage()
    message["To"] = to
    message["Subject"] = subject
    if sender:
        message["From"] = sender
    message.set_content(body)
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


def send_email(*, to: str, subject: str, body: str) -> dict[str, Any]:
    source = "gmail_send"
    recipient = to.strip() if isinstance(to, str) else ""
    if not recipient or "@" not in recipient:
        return {"ok": False, "source": source, "error": "to must be an email address."}
    if not isinstance(subject, str) or not subject.strip():
        return {"ok": False, "source": source, "error": "subject must be non-empty."}

    settings = _gmail_settings()
    token = get_google_access_token()
    if not token.get("ok"):
        return {"ok": False, "source": source, "error": f"Google auth failed: {token.get('error')}"}

    headers = {
        "Authorization": f"Bearer {token['access_token']}",
        "Accept": "application/json",
    }
    raw = build_raw_message(to=recipient, subject=subject.strip(), body=body, sender=settings["sender"])
    try:
        payload = _post_json(GMAIL_SEND_URL, headers, {"raw": raw}, settings["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to send email to %s: %s", recipient, exc)
        return {"ok": False, "source": source, "error": f"Failed to send email: {exc}"}

    logger.info("Sent email %r to %s", subject.strip(), recipient)
    return {"ok": True, "source": source, "message_id": payload.get("id"), "error": None}
