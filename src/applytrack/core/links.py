"""HYPERLINK formula and Google Drive URL helpers."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

_HYPERLINK_PATTERN = re.compile(
    r'^\s*=\s*HYPERLINK\(\s*"((?:[^"]|"")*)"\s*(?:[,;]\s*"((?:[^"]|"")*)"\s*)?\)\s*$',
    re.IGNORECASE,
)
_DRIVE_PATH_PATTERN = re.compile(r"/(?:d|folders)/([a-zA-Z0-9_-]{10,})")
_DRIVE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{10,}$")


def _quote(value: str) -> str:
    return value.replace('"', '""')


def hyperlink_formula(url: str, label: str | None = None) -> str:
    clean_url = url.strip()
    if label is None or not label.strip():
        return f'=HYPERLINK("{_quote(clean_url)}")'
    return f'=HYPERLINK("{_quote(clean_url)}","{_quote(label.strip())}")'


def is_url(value: str) -> bool:
    text = value.strip().lower()
    return text.startswith("http://") or text.startswith("https://")


def parse_hyperlink(cell: str) -> tuple[str | None, str]:
    """Return `(url, label)` for a cell value.

    Formula cells yield their target and label (the label defaults to the URL).
    Plain URLs yield themselves twice; any other text yields `(None, text)`.
    """
    text = cell if isinstance(cell, str) else str(cell or "")
    match = _HYPERLINK_PATTERN.match(text)
    if match:
        url = match.group(1).replace('""', '"').strip()
        label = match.group(2)
        label = label.replace('""', '"').strip() if label is not None else url
        return (url or None), label
    stripped = text.strip()
    if is_url(stripped):
        return stripped, stripped
    return None, stripped


def cell_url(cell: str) -> str | None:
    url, _ = parse_hyperlink(cell)
    return url


def drive_file_id(value: str | None) -> str | None:
    """Extract a Drive file or folder ID from a URL, a HYPERLINK formula or a bare ID."""
    if not value:
        return None
    url = cell_url(value) or value.strip()
    match = _DRIVE_PATH_PATTERN.search(url)
    if match:
        return match.group(1)
    if is_url(url):
        query = parse_qs(urlparse(url).query)
        ids = query.get("id")
        if ids and _DRIVE_ID_PATTERN.match(ids[0]):
            return ids[0]
        return None
    if _DRIVE_ID_PATTERN.match(url):
        return url
    return None


def google_doc_url(file_id: str) -> str:
    return f"https://docs.google.com/document/d/{file_id}/edit"
