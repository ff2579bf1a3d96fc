"""Helpers shared by the pipelines."""

from __future__ import annotations

from typing import Any

from src.applytrack.core.settings import Settings
from src.applytrack.tools.kernel.google_sheets_jobs import read_settings_values


def load_settings(source: str) -> tuple[Settings | None, dict[str, Any] | None]:
    """Read the Settings tab fresh; return `(settings, None)` or `(None, error_payload)`."""
    result = read_settings_values()
    if not result.get("ok"):
        return None, {"ok": False, "source": source, "error": f"Settings unavailable: {result.get('error')}"}
    return Settings.from_values(result.get("values") or {}), None


def missing_settings_error(source: str, missing: list[str]) -> dict[str, Any]:
    return {
        "ok": False,
        "source": source,
        "error": "Missing settings: " + ", ".join(missing),
        "missing": missing,
    }
