"""Google Drive helpers: resume export, cover-letter documents, trash/restore."""

from __future__ import annotations

import io
import json
import logging
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from src.applytrack.core.config_loader import get_tool_block
from src.applytrack.core.links import google_doc_url
from src.applytrack.tools.kernel.google_auth import get_google_access_token

logger = logging.getLogger(__name__)

DRIVE_API_BASE = "https://www.googleapis.com/drive/v3/files"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DEFAULT_TIMEOUT_SEC = 30
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
MULTIPART_BOUNDARY = "applytrackBoundary4dc1f0b2a7e9"


def _drive_settings() -> dict[str, Any]:
    block = get_tool_block("google_drive")
    timeout_sec = block.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    return {"timeout_sec": int(timeout_sec) if isinstance(timeout_sec, int) else DEFAULT_TIMEOUT_SEC}


def _authorized_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}


def _send(method: str, url: str, headers: dict[str, str], timeout_sec: int, *, data: bytes | None = None, content_type: str | None = None) -> bytes:
    merged = {**headers, "Content-Type": content_type} if content_type else headers
    with urlopen(Request(url, data=data, headers=merged, method=method), timeout=timeout_sec) as response:
        return response.read()


def _as_object(raw: bytes) -> dict[str, Any]:
    payload = json.loads(raw.decode("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object from Google Drive, got {type(payload).__name__}.")
    return payload


def _fetch_json(url: str, headers: dict[str, str], timeout_sec: int) -> dict[str, Any]:
    return _as_object(_send("GET", url, headers, timeout_sec))


def _fetch_text(url: str, headers: dict[str, str], timeout_sec: int) -> str:
    return _send("GET", url, headers, timeout_sec).decode("utf-8-sig")


def _patch_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int) -> dict[str, Any]:
    body = json.dumps(payload).encode("utf-8")
    return _as_object(_send("PATCH", url, headers, timeout_sec, data=body, content_type="application/json"))


def _multipart_body(metadata: dict[str, Any], content: bytes, content_type: str) -> bytes:
    delimiter = f"--{MULTIPART_BOUNDARY}".encode("utf-8")
    return b"\r\n".join(
        [
            delimiter,
            b"Content-Type: application/json; charset=UTF-8",
            b"",
            json.dumps(metadata).encode("utf-8"),
            delimiter,
            f"Content-Type: {content_type}".encode("utf-8"),
            b"",
            content,
            delimiter + b"--",
            b"",
        ]
    )


def _upload_multipart(
    *,
    headers: dict[str, str],
    metadata: dict[str, Any],
    content: bytes,
    content_type: str,
    timeout_sec: int,
) -> dict[str, Any]:
    params = urlencode({"uploadType": "multipart", "fields": "id,name,webViewLink,mimeType,parents"})
    raw = _send(
        "POST",
        f"{DRIVE_UPLOAD_URL}?{params}",
        headers,
        timeout_sec,
        data=_multipart_body(metadata, content, content_type),
        content_type=f"multipart/related; boundary={MULTIPART_BOUNDARY}",
    )
    return _as_object(raw)


def _file_url(file_id: str, params: dict[str, str]) -> str:
    return f"{DRIVE_API_BASE}/{quote(file_id, safe='')}?{urlencode(params)}"


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _error(source: str, message: str) -> dict[str, Any]:
    return {"ok": False, "source": source, "error": message}


def _access_headers(source: str) -> tuple[dict[str, str] | None, dict[str, Any] | None]:
    token = get_google_access_token()
    if not token.get("ok"):
        return None, _error(source, f"Google auth failed: {token.get('error')}")
    access_token = str(token.get("access_token") or "")
    if not access_token:
        return None, _error(source, "Google auth returned empty access token.")
    return _authorized_headers(access_token), None


def _validate_folder_id(*, headers: dict[str, str], folder_id: str, timeout_sec: int) -> str:
    payload = _fetch_json(_file_url(folder_id, {"fields": "id,mimeType,trashed"}), headers, timeout_sec)
    if payload.get("mimeType") != FOLDER_MIME_TYPE:
        raise ValueError("Cover letter folder is not a Drive folder.")
    if payload.get("trashed") is True:
        raise ValueError("Cover letter folder is in the trash.")
    return folder_id


def _file_exists_in_folder(*, headers: dict[str, str], folder_id: str, name: str, timeout_sec: int) -> bool:
    query = f"name = '{_escape_query_value(name)}' and '{_escape_query_value(folder_id)}' in parents and trashed = false"
    params = urlencode({"q": query, "fields": "files(id,name)", "pageSize": 10, "spaces": "drive"})
    payload = _fetch_json(f"{DRIVE_API_BASE}?{params}", headers, timeout_sec)
    files = payload.get("files")
    return isinstance(files, list) and len(files) > 0


def _with_timestamp_suffix(name: str) -> str:
    stamp = datetime.now(tz=UTC).strftime("%Y%m%d-%H%M%S")
    return f"{name} ({stamp})"


def render_docx_bytes(*, title: str | None, paragraphs: list[str]) -> bytes:
    """Render paragraphs to an in-memory DOCX with python-docx."""
    from docx import Document

    doc = Document()
    if isinstance(title, str) and title.strip():
        doc.add_heading(title.strip(), level=1)
    for paragraph in paragraphs:
        doc.add_paragraph(paragraph.strip())
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def export_doc_text(*, file_id: str) -> dict[str, Any]:
    """Export a Google Doc as plain text."""
    source = "google_drive_export_text"
    doc_id = file_id.strip() if isinstance(file_id, str) else ""
    if not doc_id:
        return _error(source, "file_id must be non-empty.")
    headers, error = _access_headers(source)
    if error:
        return error

    url = f"{DRIVE_API_BASE}/{quote(doc_id, safe='')}/export?{urlencode({'mimeType': 'text/plain'})}"
    try:
        text = _fetch_text(url, headers, _drive_settings()["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to export document %s: %s", doc_id, exc)
        return _error(source, f"Failed to export document: {exc}")

    text = text.strip()
    if not text:
        return _error(source, "Exported document is empty.")
    return {"ok": True, "source": source, "file_id": doc_id, "text": text, "chars": len(text), "error": None}


def create_google_doc(
    *,
    name: str,
    paragraphs: list[str],
    folder_id: str,
    title: str | None = None,
) -> dict[str, Any]:
    """Upload paragraphs as a DOCX converted to a Google Doc inside `folder_id`."""
    source = "google_drive_create_doc"
    clean_name = name.strip() if isinstance(name, str) else ""
    if not clean_name:
        return _error(source, "name must be non-empty.")
    clean_paragraphs = [item.strip() for item in paragraphs if isinstance(item, str) and item.strip()]
    if not clean_paragraphs:
        return _error(source, "paragraphs must contain non-empty strings.")
    if not isinstance(folder_id, str) or not folder_id.strip():
        return _error(source, "folder_id must be non-empty.")

    headers, error = _access_headers(source)
    if error:
        return error
    timeout_sec = _drive_settings()["timeout_sec"]

    try:
        target_folder = _validate_folder_id(headers=headers, folder_id=folder_id.strip(), timeout_sec=timeout_sec)
    except Exception as exc:
        return _error(source, f"Failed to resolve cover letter folder: {exc}")

    final_name = clean_name
    try:
        if _file_exists_in_folder(headers=headers, folder_id=target_folder, name=clean_name, timeout_sec=timeout_sec):
            final_name = _with_timestamp_suffix(clean_name)
    except Exception as exc:
        return _error(source, f"Failed to check filename conflict: {exc}")

    try:
        content = render_docx_bytes(title=title, paragraphs=clean_paragraphs)
    except Exception as exc:
        return _error(source, f"Failed to render document: {exc}")

    metadata = {"name": final_name, "parents": [target_folder], "mimeType": GOOGLE_DOC_MIME_TYPE}
    try:
        payload = _upload_multipart(
            headers=headers,
            metadata=metadata,
            content=content,
            content_type=DOCX_MIME_TYPE,
            timeout_sec=timeout_sec,
        )
    except Exception as exc:
        logger.error("Failed to upload %r: %s", final_name, exc)
        return _error(source, f"Failed to upload document: {exc}")

    file_id = payload.get("id")
    if not isinstance(file_id, str) or not file_id.strip():
        return _error(source, "Upload response missing file id.")
    web_view_link = payload.get("webViewLink")
    if not isinstance(web_view_link, str) or not web_view_link.strip():
        web_view_link = google_doc_url(file_id)

    logger.info("Created document %r (%s)", final_name, file_id)
    return {
        "ok": True,
        "source": source,
        "file_id": file_id,
        "name": payload.get("name") or final_name,
        "folder_id": target_folder,
        "web_view_link": web_view_link,
        "error": None,
    }


def set_file_trashed(*, file_id: str, trashed: bool) -> dict[str, Any]:
    """Move a Drive file to the trash (`trashed=True`) or restore it."""
    source = "google_drive_trash" if trashed else "google_drive_restore"
    clean_id = file_id.strip() if isinstance(file_id, str) else ""
    if not clean_id:
        return _error(source, "file_id must be non-empty.")
    headers, error = _access_headers(source)
    if error:
        return error

    url = _file_url(clean_id, {"fields": "id,name,trashed"})
    try:
        payload = _patch_json(url, headers, {"trashed": bool(trashed)}, _drive_settings()["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to %s file %s: %s", "trash" if trashed else "restore", clean_id, exc)
        return _error(source, f"Failed to update file: {exc}")

    return {
        "ok": True,
        "source": source,
        "file_id": clean_id,
        "name": payload.get("name"),
        "trashed": bool(payload.get("trashed", trashed)),
        "error": None,
    }
