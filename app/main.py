"""HTTP surface for host-side triggers (sheet edit forwarders, cron jobs)."""

from __future__ import annotations

import hmac
import logging
from typing import Any

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from src.applytrack.core.config_loader import load_config_or_empty
from src.applytrack.core.log_config import configure_logging
from src.applytrack.pipelines.common import load_settings
from src.applytrack.pipelines.cover_letters import drain_cover_letters, process_next_cover_letter, requeue_cover_letters
from src.applytrack.pipelines.discover_jobs import run_job_search
from src.applytrack.pipelines.status_edits import handle_status_edit
from src.applytrack.tools.kernel.google_sheets_jobs import list_job_rows

logger = logging.getLogger(__name__)

app = FastAPI(title="applytrack")


class SheetEditRequest(BaseModel):
    row: int = Field(ge=1)
    column: str | int
    value: bool | str | None = None


class DrainRequest(BaseModel):
    max_items: int | None = Field(default=None, ge=1)
    time_budget_sec: float | None = Field(default=None, gt=0)


class RequeueRequest(BaseModel):
    include_generating: bool = False


def _require_token(token: str | None) -> None:
    """Reject the call when `app.webhook_token` is configured and does not match."""
    block = load_config_or_empty().get("app")
    expected = block.get("webhook_token") if isinstance(block, dict) else None
    if not isinstance(expected, str) or not expected:
        return
    if not token or not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Invalid or missing X-Applytrack-Token header.")


@app.on_event("startup")
def _configure_logging() -> None:
    configure_logging()


@app.get("/health")
def health() -> dict:
    return {"ok": True, "source": "applytrack_app"}


@app.get("/api/settings")
def settings(x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    loaded, error = load_settings("settings_show")
    if error:
        return error
    return {"ok": True, "source": "settings_show", "settings": loaded.masked(), "error": None}


@app.get("/api/jobs")
def jobs(x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    listed = list_job_rows()
    if not listed.get("ok"):
        return listed
    rows: list[dict[str, Any]] = []
    for row in listed.get("rows") or []:
        summary = row["record"].summary()
        summary["row_number"] = row["row_number"]
        rows.append(summary)
    return {"ok": True, "source": listed.get("source"), "rows": rows, "rows_count": len(rows), "error": None}


@app.post("/api/jobs/search")
def search(x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    return run_job_search()


@app.post("/api/cover-letters/next")
def cover_letter_next(x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    return process_next_cover_letter()


@app.post("/api/cover-letters/drain")
def cover_letter_drain(req: DrainRequest | None = None, x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    body = req or DrainRequest()
    return drain_cover_letters(max_items=body.max_items, time_budget_sec=body.time_budget_sec)


@app.post("/api/cover-letters/requeue")
def cover_letter_requeue(req: RequeueRequest | None = None, x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    body = req or RequeueRequest()
    return requeue_cover_letters(include_generating=body.include_generating)


@app.post("/api/sheet/edit")
def sheet_edit(req: SheetEditRequest, x_applytrack_token: str | None = Header(default=None)) -> dict:
    _require_token(x_applytrack_token)
    logger.debug("Sheet edit row=%s column=%s value=%r", req.row, req.column, req.value)
    return handle_status_edit(row_number=req.row, column=req.column, value=req.value)
