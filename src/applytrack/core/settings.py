"""Settings-tab record: flat key/value configuration kept in the spreadsheet."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .links import cell_url, drive_file_id, parse_hyperlink

SEARCH_API_KEY = "Search API Key"
GENERATIVE_API_KEY = "Generative API Key"
SEARCH_KEYWORDS = "Search Keywords"
SEARCH_LOCATION = "Search Location"
RESUME_DOC = "Resume Doc"
COVER_LETTER_FOLDER = "Cover Letter Folder"
NOTIFICATION_EMAIL = "Notification Email"
APPLICANT_NAME = "Applicant Name"
COVER_LETTER_INSTRUCTIONS = "Cover Letter Instructions"

SEARCH_REQUIRED = (SEARCH_API_KEY, SEARCH_KEYWORDS)
COVER_LETTER_REQUIRED = (GENERATIVE_API_KEY, RESUME_DOC, COVER_LETTER_FOLDER)
SECRET_KEYS = (SEARCH_API_KEY, GENERATIVE_API_KEY)

_KEYWORD_SPLIT = re.compile(r"[,\n;]+")


def _normalize_key(key: str) -> str:
    return " ".join(key.strip().lower().split())


@dataclass(slots=True)
class Settings:
    """Case-insensitive view over the Settings tab. No caching, no validation beyond presence."""

    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_values(cls, raw: Mapping[str, Any]) -> "Settings":
        values: dict[str, str] = {}
        for key, value in raw.items():
            if not isinstance(key, str) or not key.strip():
                continue
            values[_normalize_key(key)] = str(value).strip() if value is not None else ""
        return cls(values=values)

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(_normalize_key(key), default)

    def text(self, key: str) -> str:
        """Display text of a value (HYPERLINK label for formula cells)."""
        url, label = parse_hyperlink(self.get(key))
        return label or url or ""

    def missing(self, keys: Iterable[str]) -> list[str]:
        return [key for key in keys if not self.text(key)]

    def keywords(self) -> list[str]:
        seen: set[str] = set()
        out: list[str] = []
        for part in _KEYWORD_SPLIT.split(self.text(SEARCH_KEYWORDS)):
            keyword = part.strip()
            if keyword and keyword.lower() not in seen:
                seen.add(keyword.lower())
                out.append(keyword)
        return out

    def link(self, key: str) -> str | None:
        return cell_url(self.get(key))

    def drive_id(self, key: str) -> str | None:
        return drive_file_id(self.get(key))

    def masked(self) -> dict[str, str]:
        secret = {_normalize_key(key) for key in SECRET_KEYS}
        out: dict[str, str] = {}
        for key, value in self.values.items():
            if key in secret and value:
                out[key] = f"***{value[-4:]}" if len(value) > 8 else "***"
            else:
                out[key] = value
        return out
