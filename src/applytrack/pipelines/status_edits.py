"""Checkbox edits on the Jobs tab: document trash/restore, then a full resort."""

from __future__ import annotations

import logging
from typing import Any

from src.applytrack.core.jobs_schema import STATUS_COLUMNS, JobRecord, parse_checkbox, resolve_column_name
from src.applytrack.core.links import drive_file_id
from src.applytrack.tools.kernel.google_drive_docs import set_file_trashed
from src.applytrack.tools.kernel.google_sheets_jobs import get_job_row, sort_job_rows

logger = logging.getLogger(__name__)

NOT_APPLYING = "Not Applying"


def _sync_document(record: JobRecord | None, *, not_applying: bool) -> dict[str, Any] | None:
    url = record.cover_letter_url if record is not None else None
    file_id = drive_file_id(url)
    if not file_id:
        return None
    result = set_file_trashed(file_id=file_id, trashed=not_applying)
    if not result.get("ok"):
        logger.error("Could not %s cover letter for job %s: %s", "trash" if not_applying else "restore", record.job_id, result.get("error"))
    return result


def handle_status_edit(*, row_number: int, column: str | int, value: Any = None) -> dict[str, Any]:
    """React to an edit of the `Applied` or `Not Applying` checkbox.

    `value` is the new cell value as reported by the caller; when omitted the row
    is read back from the sheet. Other columns and the header row are ignored.
    """
    source = "status_edit"
    column_name = resolve_column_name(column)
    if row_number < 2 or column_name not in STATUS_COLUMNS:
        return {"ok": True, "source": source, "handled": False, "column": column_name, "error": None}

    fetched = get_job_row(row_number=row_number)
    if not fetched.get("ok"):
        return {"ok": False, "source": source, "handled": False, "error": fetched.get("error")}
    record = fetched.get("record")

    document: dict[str, Any] | None = None
    if column_name == NOT_APPLYING:
        if value is None:
            checked = bool(record.not_applying) if record is not None else False
        else:
            checked = parse_checkbox(value)
        document = _sync_document(record, not_applying=checked)

    sorted_result = sort_job_rows()
    if not sorted_result.get("ok"):
        logger.error("Resort after edit of row %s failed: %s", row_number, sorted_result.get("error"))

    errors = [item["error"] for item in (document, sorted_result) if item is not None and not item.get("ok")]
    return {
        "ok": not errors,
        "source": source,
        "handled": True,
        "row_number": row_number,
        "column": column_name,
        "job_id": record.job_id if record is not None else None,
        "document": document,
        "sorted": bool(sorted_result.get("ok")),
        "error": "; ".join(str(err) for err in errors) or None,
    }
