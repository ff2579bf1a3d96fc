"""Background cover-letter generation, one queued row per invocation.

Each call claims the first `Pending...` row, marks it `Generating...`, generates
and stores the document, then writes the document link or the error marker.
Processing a single item per call keeps every invocation short; repeated calls
from a time-based scheduler drain the queue. Nothing here locks the sheet:
only one scheduled caller is expected to run at a time.
"""

from __future__ import annotations

import logging
from time import monotonic
from typing import Any

from src.applytrack.core.cover_letter_prompt import build_cover_letter_messages, document_name, letter_paragraphs
from src.applytrack.core.jobs_schema import (
    COVER_LETTER_ERROR,
    COVER_LETTER_GENERATING,
    COVER_LETTER_LINK_LABEL,
    COVER_LETTER_PENDING,
    JobRecord,
)
from src.applytrack.core.links import hyperlink_formula
from src.applytrack.core.llm_client import call_llm
from src.applytrack.core.settings import (
    APPLICANT_NAME,
    COVER_LETTER_FOLDER,
    COVER_LETTER_INSTRUCTIONS,
    COVER_LETTER_REQUIRED,
    GENERATIVE_API_KEY,
    RESUME_DOC,
)
from src.applytrack.pipelines.common import load_settings, missing_settings_error
from src.applytrack.tools.kernel.google_drive_docs import create_google_doc, export_doc_text
from src.applytrack.tools.kernel.google_sheets_jobs import list_job_ids, list_job_rows, update_job_cell

logger = logging.getLogger(__name__)

COLUMN = "Cover Letter"


def _next_pending(rows: list[dict[str, Any]]) -> tuple[int, JobRecord] | None:
    for row in rows:
        record: JobRecord = row["record"]
        if record.cover_letter.strip() == COVER_LETTER_PENDING and not record.not_applying:
            return int(row["row_number"]), record
    return None


def generate_cover_letter(record: JobRecord) -> dict[str, Any]:
    """Generate and store a cover letter for one job; never writes to the sheet."""
    source = "cover_letter_generate"
    settings, error = load_settings(source)
    if error:
        return error
    missing = settings.missing(COVER_LETTER_REQUIRED)
    if missing:
        return missing_settings_error(source, missing)

    resume_id = settings.drive_id(RESUME_DOC)
    folder_id = settings.drive_id(COVER_LETTER_FOLDER)
    if not resume_id:
        return {"ok": False, "source": source, "error": f"'{RESUME_DOC}' is not a Google Doc link."}
    if not folder_id:
        return {"ok": False, "source": source, "error": f"'{COVER_LETTER_FOLDER}' is not a Drive folder link."}

    resume = export_doc_text(file_id=resume_id)
    if not resume.get("ok"):
        return {"ok": False, "source": source, "error": f"Resume export failed: {resume.get('error')}"}

    messages = build_cover_letter_messages(
        job=record,
        resume_text=str(resume["text"]),
        applicant_name=settings.text(APPLICANT_NAME),
        instructions=settings.text(COVER_LETTER_INSTRUCTIONS),
    )
    completion = call_llm(messages=messages, api_key=settings.text(GENERATIVE_API_KEY))
    if not completion.get("ok"):
        return {"ok": False, "source": source, "error": f"Generation failed: {completion.get('error')}"}

    paragraphs = letter_paragraphs(str(completion.get("text") or ""))
    if not paragraphs:
        return {"ok": False, "source": source, "error": "Generation returned empty text."}

    document = create_google_doc(name=document_name(record), paragraphs=paragraphs, folder_id=folder_id)
    if not document.get("ok"):
        return {"ok": False, "source": source, "error": f"Document creation failed: {document.get('error')}"}

    return {
        "ok": True,
        "source": source,
        "file_id": document["file_id"],
        "web_view_link": document["web_view_link"],
        "paragraphs": len(paragraphs),
        "error": None,
    }


def _current_row(job_id: int, fallback_row: int) -> int | None:
    """Row holding `job_id` now; the table may have been re-sorted since the claim."""
    located = list_job_ids()
    if not located.get("ok"):
        logger.warning("Could not re-locate job %s (%s); using row %s", job_id, located.get("error"), fallback_row)
        return fallback_row
    rows_by_id = located.get("rows_by_id") or {}
    return rows_by_id.get(job_id)


def process_next_cover_letter() -> dict[str, Any]:
    """Advance exactly one queued row to a terminal cover-letter state."""
    source = "cover_letter_next"
    listed = list_job_rows()
    if not listed.get("ok"):
        return {"ok": False, "source": source, "processed": False, "error": listed.get("error")}

    target = _next_pending(listed.get("rows") or [])
    if target is None:
        return {"ok": True, "source": source, "processed": False, "reason": "queue_empty", "error": None}
    row_number, record = target

    claimed = update_job_cell(row_number=row_number, column=COLUMN, value=COVER_LETTER_GENERATING)
    if not claimed.get("ok"):
        return {"ok": False, "source": source, "processed": False, "job_id": record.job_id, "error": claimed.get("error")}
    logger.info("Generating cover letter for job %s (row %s)", record.job_id, row_number)

    try:
        outcome = generate_cover_letter(record)
    except Exception as exc:
        logger.exception("Cover letter generation crashed for job %s", record.job_id)
        outcome = {"ok": False, "error": f"Unexpected error: {exc}"}

    if outcome.get("ok"):
        final_value = hyperlink_formula(str(outcome["web_view_link"]), COVER_LETTER_LINK_LABEL)
    else:
        logger.error("Cover letter for job %s failed: %s", record.job_id, outcome.get("error"))
        final_value = COVER_LETTER_ERROR

    final_row = _current_row(record.job_id, row_number)
    if final_row is None:
        logger.warning("Job %s is no longer in the sheet; result not recorded", record.job_id)
        written = {"ok": False, "error": "job row no longer exists"}
    else:
        written = update_job_cell(row_number=final_row, column=COLUMN, value=final_value)

    return {
        "ok": bool(outcome.get("ok")) and bool(written.get("ok")),
        "source": source,
        "processed": True,
        "job_id": record.job_id,
        "row_number": final_row,
        "state": "created" if outcome.get("ok") else "error",
        "document_url": outcome.get("web_view_link"),
        "error": outcome.get("error") or written.get("error"),
    }


def drain_cover_letters(*, max_items: int | None = None, time_budget_sec: float | None = None) -> dict[str, Any]:
    """Repeat single-item processing until the queue is empty or a limit is hit."""
    source = "cover_letter_drain"
    started = monotonic()
    results: list[dict[str, Any]] = []
    stop_reason = "queue_empty"
    while True:
        if max_items is not None and len(results) >= max_items:
            stop_reason = "max_items"
            break
        if time_budget_sec is not None and monotonic() - started >= time_budget_sec:
            stop_reason = "time_budget"
            break
        result = process_next_cover_letter()
        if not result.get("processed"):
            if not result.get("ok"):
                stop_reason = "error"
                results.append(result)
            break
        results.append(result)

    processed = [item for item in results if item.get("processed")]
    return {
        "ok": stop_reason != "error",
        "source": source,
        "processed": len(processed),
        "created": sum(1 for item in processed if item.get("state") == "created"),
        "failed": sum(1 for item in processed if item.get("state") == "error"),
        "stop_reason": stop_reason,
        "results": results,
        "error": results[-1].get("error") if stop_reason == "error" else None,
    }


def requeue_cover_letters(*, include_generating: bool = False) -> dict[str, Any]:
    """Reset failed (and optionally stuck `Generating...`) rows back to `Pending...`."""
    source = "cover_letter_requeue"
    states = {COVER_LETTER_ERROR}
    if include_generating:
        states.add(COVER_LETTER_GENERATING)

    listed = list_job_rows()
    if not listed.get("ok"):
        return {"ok": False, "source": source, "error": listed.get("error")}

    requeued: list[int] = []
    errors: list[str] = []
    for row in listed.get("rows") or []:
        record: JobRecord = row["record"]
        if record.cover_letter.strip() not in states:
            continue
        written = update_job_cell(row_number=int(row["row_number"]), column=COLUMN, value=COVER_LETTER_PENDING)
        if written.get("ok"):
            requeued.append(record.job_id)
        else:
            errors.append(f"{record.job_id}: {written.get('error')}")

    logger.info("Requeued %d cover letter(s)", len(requeued))
    return {
        "ok": not errors,
        "source": source,
        "requeued": requeued,
        "error": "; ".join(errors) or None,
    }
