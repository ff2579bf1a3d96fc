"""Google Sheets helpers for the Jobs and Settings tabs."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from src.applytrack.core.config_loader import get_tool_block
from src.applytrack.core.jobs_schema import (
    COLUMN_INDEX,
    JOB_COLUMNS,
    SORT_ORDER,
    JobRecord,
    column_letter,
    column_letters,
    parse_job_id,
)
from src.applytrack.tools.kernel.google_auth import get_google_access_token

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
DEFAULT_TIMEOUT_SEC = 15
DEFAULT_JOBS_SHEET_NAME = "Jobs"
DEFAULT_SETTINGS_SHEET_NAME = "Settings"
SPREADSHEET_ID_KEY = "tool_profiles.user_specific.google_sheets.spreadsheet_id"


def _sheets_settings() -> dict[str, Any]:
    block = get_tool_block("google_sheets")
    spreadsheet_id = block.get("spreadsheet_id")
    jobs_sheet = block.get("jobs_sheet_name")
    settings_sheet = block.get("settings_sheet_name")
    timeout_sec = block.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    return {
        "spreadsheet_id": spreadsheet_id.strip() if isinstance(spreadsheet_id, str) and spreadsheet_id.strip() else None,
        "jobs_sheet": jobs_sheet.strip() if isinstance(jobs_sheet, str) and jobs_sheet.strip() else DEFAULT_JOBS_SHEET_NAME,
        "settings_sheet": settings_sheet.strip()
        if isinstance(settings_sheet, str) and settings_sheet.strip()
        else DEFAULT_SETTINGS_SHEET_NAME,
        "timeout_sec": int(timeout_sec) if isinstance(timeout_sec, int) else DEFAULT_TIMEOUT_SEC,
    }


def _quote_sheet(sheet_name: str) -> str:
    return "'" + sheet_name.replace("'", "''") + "'"


def _last_column() -> str:
    return column_letters(len(JOB_COLUMNS))


def _values_url(spreadsheet_id: str, range_name: str, *, suffix: str = "", params: dict[str, str] | None = None) -> str:
    encoded_sheet = quote(spreadsheet_id, safe="")
    encoded_range = quote(range_name, safe="!:$")
    url = f"{SHEETS_API_BASE}/{encoded_sheet}/values/{encoded_range}{suffix}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def _batch_update_url(spreadsheet_id: str) -> str:
    return f"{SHEETS_API_BASE}/{quote(spreadsheet_id, safe='')}:batchUpdate"


def _metadata_url(spreadsheet_id: str) -> str:
    return f"{SHEETS_API_BASE}/{quote(spreadsheet_id, safe='')}?fields=sheets(properties(sheetId,title))"


def _authorized_headers(access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }


def _fetch_json(url: str, headers: dict[str, str], timeout_sec: int) -> dict[str, Any]:
    request = Request(url, headers=headers, method="GET")
    with urlopen(request, timeout=timeout_sec) as response:
        body = response.read().decode("utf-8")
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("Google Sheets response must be a JSON object.")
    return payload


def _send_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int, *, method: str) -> dict[str, Any]:
    request_headers = dict(headers)
    request_headers["Content-Type"] = "application/json"
    request = Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers=request_headers,
        method=method,
    )
    with urlopen(request, timeout=timeout_sec) as response:
        body = response.read().decode("utf-8")
    data = json.loads(body) if body.strip() else {}
    if not isinstance(data, dict):
        raise ValueError("Google Sheets response must be a JSON object.")
    return data


def _post_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int) -> dict[str, Any]:
    return _send_json(url, headers, payload, timeout_sec, method="POST")


def _put_json(url: str, headers: dict[str, str], payload: dict[str, Any], timeout_sec: int) -> dict[str, Any]:
    return _send_json(url, headers, payload, timeout_sec, method="PUT")


def _error_payload(source: str, message: str) -> dict[str, Any]:
    return {
        "ok": False,
        "source": source,
        "error": message,
    }


def _session(source: str) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """Return `(context, None)` with settings and auth headers, or `(None, error_payload)`."""
    settings = _sheets_settings()
    if not settings["spreadsheet_id"]:
        return None, _error_payload(source, f"Missing {SPREADSHEET_ID_KEY}.")
    token = get_google_access_token()
    if not token.get("ok"):
        return None, _error_payload(source, f"Google auth failed: {token.get('error')}")
    context = dict(settings)
    context["headers"] = _authorized_headers(str(token["access_token"]))
    return context, None


def _values_rows(payload: dict[str, Any]) -> list[list[Any]]:
    values = payload.get("values")
    if not isinstance(values, list):
        return []
    return [row if isinstance(row, list) else [] for row in values]


def _get_sheet_id(payload: dict[str, Any], title: str) -> int | None:
    sheets = payload.get("sheets")
    if not isinstance(sheets, list):
        return None
    for item in sheets:
        props = item.get("properties") if isinstance(item, dict) else None
        if not isinstance(props, dict) or props.get("title") != title:
            continue
        sheet_id = props.get("sheetId")
        if isinstance(sheet_id, int):
            return sheet_id
    return None


def read_settings_values() -> dict[str, Any]:
    """Read the Settings tab as an ordered `{key: value}` mapping (columns A and B)."""
    source = "google_sheets_settings_read"
    context, error = _session(source)
    if error:
        return error

    range_name = f"{_quote_sheet(context['settings_sheet'])}!A:B"
    url = _values_url(context["spreadsheet_id"], range_name, params={"valueRenderOption": "FORMULA"})
    try:
        payload = _fetch_json(url, context["headers"], context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to read settings tab: %s", exc)
        return _error_payload(source, f"Failed to read settings: {exc}")

    values: dict[str, str] = {}
    for row in _values_rows(payload):
        key = str(row[0]).strip() if row and row[0] is not None else ""
        if not key:
            continue
        value = row[1] if len(row) > 1 and row[1] is not None else ""
        values[key] = str(value)
    return {"ok": True, "source": source, "values": values, "error": None}


def list_job_rows() -> dict[str, Any]:
    """Read every data row of the Jobs tab with formulas preserved."""
    source = "google_sheets_jobs_list"
    context, error = _session(source)
    if error:
        return error

    range_name = f"{_quote_sheet(context['jobs_sheet'])}!A2:{_last_column()}"
    url = _values_url(context["spreadsheet_id"], range_name, params={"valueRenderOption": "FORMULA"})
    try:
        payload = _fetch_json(url, context["headers"], context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to read job rows: %s", exc)
        return _error_payload(source, f"Failed to read job rows: {exc}")

    rows: list[dict[str, Any]] = []
    for offset, values in enumerate(_values_rows(payload)):
        record = JobRecord.from_sheet_values(values)
        if record is None:
            continue
        # Data starts at row 2 because row 1 is the header.
        rows.append({"row_number": offset + 2, "record": record})
    return {"ok": True, "source": source, "rows": rows, "rows_count": len(rows), "error": None}


def get_job_row(*, row_number: int) -> dict[str, Any]:
    source = "google_sheets_jobs_get_row"
    if row_number < 2:
        return _error_payload(source, "row_number must be >= 2.")
    context, error = _session(source)
    if error:
        return error

    range_name = f"{_quote_sheet(context['jobs_sheet'])}!A{row_number}:{_last_column()}{row_number}"
    url = _values_url(context["spreadsheet_id"], range_name, params={"valueRenderOption": "FORMULA"})
    try:
        payload = _fetch_json(url, context["headers"], context["timeout_sec"])
    except Exception as exc:
        return _error_payload(source, f"Failed to read row {row_number}: {exc}")

    rows = _values_rows(payload)
    record = JobRecord.from_sheet_values(rows[0]) if rows else None
    return {"ok": True, "source": source, "row_number": row_number, "record": record, "error": None}


def list_job_ids() -> dict[str, Any]:
    """Return the external job IDs present in column A with their row numbers."""
    source = "google_sheets_jobs_ids"
    context, error = _session(source)
    if error:
        return error

    range_name = f"{_quote_sheet(context['jobs_sheet'])}!A2:A"
    url = _values_url(context["spreadsheet_id"], range_name, params={"valueRenderOption": "UNFORMATTED_VALUE"})
    try:
        payload = _fetch_json(url, context["headers"], context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to read job IDs: %s", exc)
        return _error_payload(source, f"Failed to read job IDs: {exc}")

    rows_by_id: dict[int, int] = {}
    for offset, row in enumerate(_values_rows(payload)):
        job_id = parse_job_id(row[0]) if row else None
        if job_id is not None and job_id not in rows_by_id:
            rows_by_id[job_id] = offset + 2
    return {
        "ok": True,
        "source": source,
        "job_ids": sorted(rows_by_id),
        "rows_by_id": rows_by_id,
        "error": None,
    }


def append_job_rows(*, records: list[JobRecord]) -> dict[str, Any]:
    """Append records after the last row of the Jobs tab in one write."""
    source = "google_sheets_jobs_append"
    if not records:
        return {"ok": True, "source": source, "updated_rows": 0, "updated_range": None, "error": None}
    context, error = _session(source)
    if error:
        return error

    range_name = f"{_quote_sheet(context['jobs_sheet'])}!A1:{_last_column()}"
    url = _values_url(
        context["spreadsheet_id"],
        range_name,
        suffix=":append",
        params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
    )
    body = {"values": [record.to_sheet_values() for record in records]}
    try:
        payload = _post_json(url, context["headers"], body, context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to append %d job row(s): %s", len(records), exc)
        return _error_payload(source, f"Failed to append rows: {exc}")

    updates = payload.get("updates") if isinstance(payload.get("updates"), dict) else {}
    return {
        "ok": True,
        "source": source,
        "updated_rows": updates.get("updatedRows", len(records)),
        "updated_range": updates.get("updatedRange"),
        "error": None,
    }


def update_job_cell(*, row_number: int, column: str, value: Any) -> dict[str, Any]:
    """Write one cell of the Jobs tab by header name."""
    source = "google_sheets_jobs_update_cell"
    if row_number < 2:
        return _error_payload(source, "row_number must be >= 2.")
    if column not in COLUMN_INDEX:
        return _error_payload(source, f"Unknown column: {column}")
    context, error = _session(source)
    if error:
        return error

    cell = f"{column_letter(column)}{row_number}"
    range_name = f"{_quote_sheet(context['jobs_sheet'])}!{cell}"
    url = _values_url(context["spreadsheet_id"], range_name, params={"valueInputOption": "USER_ENTERED"})
    try:
        payload = _put_json(url, context["headers"], {"values": [[value]]}, context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to write %s: %s", cell, exc)
        return _error_payload(source, f"Failed to write {cell}: {exc}")

    return {
        "ok": True,
        "source": source,
        "updated_range": payload.get("updatedRange"),
        "row_number": row_number,
        "column": column,
        "error": None,
    }


def build_sort_request(sheet_id: int) -> dict[str, Any]:
    """Full-table sort below the header using the Jobs tab sort order."""
    return {
        "sortRange": {
            "range": {
                "sheetId": sheet_id,
                "startRowIndex": 1,
                "startColumnIndex": 0,
                "endColumnIndex": len(JOB_COLUMNS),
            },
            "sortSpecs": [
                {
                    "dimensionIndex": COLUMN_INDEX[column],
                    "sortOrder": "DESCENDING" if descending else "ASCENDING",
                }
                for column, descending in SORT_ORDER
            ],
        }
    }


def sort_job_rows() -> dict[str, Any]:
    """Re-sort the whole Jobs tab by (Not Applying, Applied, Hourly Rate desc)."""
    source = "google_sheets_jobs_sort"
    context, error = _session(source)
    if error:
        return error

    try:
        metadata = _fetch_json(_metadata_url(context["spreadsheet_id"]), context["headers"], context["timeout_sec"])
    except Exception as exc:
        return _error_payload(source, f"Failed to read sheet metadata: {exc}")

    sheet_id = _get_sheet_id(metadata, context["jobs_sheet"])
    if sheet_id is None:
        return _error_payload(source, f"Sheet tab not found: {context['jobs_sheet']}")

    body = {"requests": [build_sort_request(sheet_id)]}
    try:
        _post_json(_batch_update_url(context["spreadsheet_id"]), context["headers"], body, context["timeout_sec"])
    except Exception as exc:
        logger.error("Failed to sort jobs tab: %s", exc)
        return _error_payload(source, f"Failed to sort rows: {exc}")

    logger.debug("Sorted jobs tab (sheetId=%s)", sheet_id)
    return {"ok": True, "source": source, "sheet_id": sheet_id, "error": None}
