"""Job discovery: search API -> new rows in the Jobs tab."""

from __future__ import annotations

import logging
import re
from typing import Any

from src.applytrack.core.jobs_schema import COVER_LETTER_PENDING, JobRecord, parse_job_id
from src.applytrack.core.pay import format_pay, hourly_rate
from src.applytrack.core.settings import NOTIFICATION_EMAIL, SEARCH_API_KEY, SEARCH_LOCATION, SEARCH_REQUIRED, Settings
from src.applytrack.pipelines.common import load_settings, missing_settings_error
from src.applytrack.tools.kernel.gmail import send_email
from src.applytrack.tools.kernel.google_sheets_jobs import append_job_rows, list_job_ids, sort_job_rows
from src.applytrack.tools.kernel.job_search import search_jobs

logger = logging.getLogger(__name__)

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return ", ".join(text for text in (_coerce_text(item) for item in value) if text)
    if isinstance(value, dict):
        return _extract_from_dict(value, ["name", "title", "value"])
    return str(value).strip()


def _extract_from_dict(payload: dict[str, Any], keys: list[str]) -> str:
    for key in keys:
        text = _coerce_text(payload.get(key))
        if text:
            return text
    return ""


def _first_present(payload: dict[str, Any], keys: list[str]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def _posting_date(job: dict[str, Any]) -> str:
    text = _extract_from_dict(job, ["date_posted", "datePosted", "posted_at", "date_created"])
    match = _ISO_DATE_PATTERN.match(text)
    return match.group(0) if match else text


def posting_to_record(job: dict[str, Any]) -> JobRecord | None:
    """Map one search-API posting to a job record; None when it has no integer ID."""
    job_id = parse_job_id(_first_present(job, ["id", "job_id", "jobId"]))
    if job_id is None:
        return None

    pay_text = format_pay(_first_present(job, ["salary_raw", "salary", "pay", "ai_salary_raw"]))
    return JobRecord(
        job_id=job_id,
        title=_extract_from_dict(job, ["title", "job_title", "jobTitle"]),
        company=_extract_from_dict(job, ["organization", "company", "companyName", "company_name"]),
        pay=pay_text,
        hourly_rate=hourly_rate(pay_text),
        link=_extract_from_dict(job, ["url", "link", "job_url", "apply_url"]),
        hiring_manager=_extract_from_dict(job, ["recruiter_name", "hiring_manager", "hiringManager"]),
        hiring_manager_link=_extract_from_dict(job, ["recruiter_url", "hiring_manager_url", "hiringManagerUrl"]),
        date_posted=_posting_date(job),
        employment_status=_extract_from_dict(job, ["employment_type", "employmentType", "employment_status"]),
        industry=_extract_from_dict(job, ["linkedin_org_industry", "industry", "organization_industry"]),
        applied=False,
        not_applying=False,
        cover_letter=COVER_LETTER_PENDING,
        description=_extract_from_dict(job, ["description_text", "description", "job_description"]),
    )


def _notification_body(records: list[JobRecord]) -> str:
    lines = [f"{len(records)} new job(s) were added to your tracker:", ""]
    for record in records:
        pay = f" | {record.pay}" if record.pay else ""
        lines.append(f"- {record.title or 'Untitled'} at {record.company or 'Unknown company'}{pay}")
        if record.link:
            lines.append(f"  {record.link}")
    lines.extend(["", "Cover letters are queued and will appear in the sheet as they are generated."])
    return "\n".join(lines)


def notify_new_jobs(settings: Settings, records: list[JobRecord]) -> dict[str, Any] | None:
    recipient = settings.text(NOTIFICATION_EMAIL)
    if not recipient or not records:
        return None
    return send_email(
        to=recipient,
        subject=f"{len(records)} new job(s) found",
        body=_notification_body(records),
    )


def run_job_search() -> dict[str, Any]:
    """Search every configured keyword and append postings not yet in the sheet.

    Known IDs are sent to the search API as an exclusion filter; IDs found for an
    earlier keyword in the same run are added to the filter for later keywords.
    """
    source = "job_search_run"
    settings, error = load_settings(source)
    if error:
        return error
    missing = settings.missing(SEARCH_REQUIRED)
    if missing:
        return missing_settings_error(source, missing)

    known = list_job_ids()
    if not known.get("ok"):
        return {"ok": False, "source": source, "error": f"Failed to read known job IDs: {known.get('error')}"}
    known_ids: set[int] = set(known.get("job_ids") or [])

    api_key = settings.text(SEARCH_API_KEY)
    location = settings.text(SEARCH_LOCATION) or None
    new_records: list[JobRecord] = []
    searches: list[dict[str, Any]] = []
    for keyword in settings.keywords():
        result = search_jobs(keyword=keyword, api_key=api_key, location=location, exclude_ids=known_ids)
        if not result.get("ok"):
            logger.error("Search for %r failed: %s", keyword, result.get("error"))
            searches.append({"keyword": keyword, "ok": False, "error": result.get("error")})
            continue

        added = 0
        for posting in result.get("jobs") or []:
            record = posting_to_record(posting)
            if record is None:
                logger.warning("Skipping posting without an integer ID: %r", posting.get("title"))
                continue
            known_ids.add(record.job_id)
            new_records.append(record)
            added += 1
        searches.append({"keyword": keyword, "ok": True, "added": added})

    if new_records:
        appended = append_job_rows(records=new_records)
        if not appended.get("ok"):
            return {
                "ok": False,
                "source": source,
                "error": f"Failed to record new jobs: {appended.get('error')}",
                "searches": searches,
            }
        sorted_result = sort_job_rows()
        if not sorted_result.get("ok"):
            logger.error("Sort after append failed: %s", sorted_result.get("error"))
    else:
        sorted_result = None

    notification = notify_new_jobs(settings, new_records)
    if notification is not None and not notification.get("ok"):
        logger.error("Notification email failed: %s", notification.get("error"))

    failed = [item for item in searches if not item["ok"]]
    logger.info("Job search added %d job(s) across %d keyword(s)", len(new_records), len(searches))
    return {
        "ok": len(failed) < len(searches) or not searches,
        "source": source,
        "added": len(new_records),
        "jobs": [record.summary() for record in new_records],
        "searches": searches,
        "sorted": bool(sorted_result and sorted_result.get("ok")),
        "notified": bool(notification and notification.get("ok")),
        "error": "; ".join(f"{item['keyword']}: {item['error']}" for item in failed) or None,
    }
