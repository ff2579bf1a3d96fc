"""Job-search API client (RapidAPI-style listing endpoint)."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

from src.applytrack.core.config_loader import get_tool_block

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://linkedin-job-search-api.p.rapidapi.com/active-jb-7d"
DEFAULT_TIMEOUT_SEC = 20
DEFAULT_LIMIT = 25
DEFAULT_KEYWORD_PARAM = "title_filter"
DEFAULT_LOCATION_PARAM = "location_filter"
DEFAULT_EXCLUDE_PARAM = "exclude_ids"


def _text_or(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


def _search_settings() -> dict[str, Any]:
    config = get_tool_block("job_search")
    base_url = _text_or(config.get("base_url"), DEFAULT_BASE_URL).rstrip("/")
    extra_params = config.get("extra_params")
    limit = config.get("limit", DEFAULT_LIMIT)
    timeout_sec = config.get("timeout_sec", DEFAULT_TIMEOUT_SEC)
    return {
        "base_url": base_url,
        "api_host": _text_or(config.get("api_host"), urlparse(base_url).netloc),
        "timeout_sec": int(timeout_sec) if isinstance(timeout_sec, int) else DEFAULT_TIMEOUT_SEC,
        "limit": int(limit) if isinstance(limit, int) and limit > 0 else DEFAULT_LIMIT,
        "keyword_param": _text_or(config.get("keyword_param"), DEFAULT_KEYWORD_PARAM),
        "location_param": _text_or(config.get("location_param"), DEFAULT_LOCATION_PARAM),
        "exclude_param": _text_or(config.get("exclude_param"), DEFAULT_EXCLUDE_PARAM),
        "extra_params": {str(k): str(v) for k, v in extra_params.items()} if isinstance(extra_params, dict) else {},
    }


def _fetch_json(url: str, headers: dict[str, str], timeout_sec: int) -> Any:
    req = Request(url, headers=headers, method="GET")
    with urlopen(req, timeout=timeout_sec) as response:
        body = response.read().decode("utf-8")
    return json.loads(body)


def _jobs_from_payload(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict):
        for key in ("jobs", "data", "results"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            return []
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def _error_payload(source: str, message: str, request: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "ok": False,
        "provider": "job_search",
        "source": source,
        "error": message,
        "request": request,
    }


def build_search_params(
    *,
    keyword: str,
    location: str | None,
    exclude_ids: Iterable[int],
    settings: dict[str, Any],
) -> dict[str, str]:
    """Query parameters for one keyword; known IDs go to the provider's exclusion filter."""
    params: dict[str, str] = dict(settings["extra_params"])
    params[settings["keyword_param"]] = f'"{keyword}"'
    if location:
        params[settings["location_param"]] = f'"{location}"'
    params["limit"] = str(settings["limit"])
    excluded = sorted(set(exclude_ids))
    if excluded:
        params[settings["exclude_param"]] = ",".join(str(job_id) for job_id in excluded)
    return params


def search_jobs(
    *,
    keyword: str,
    api_key: str,
    location: str | None = None,
    exclude_ids: Iterable[int] = (),
) -> dict[str, Any]:
    """Search postings for one keyword, excluding already-known external IDs."""
    source = "job_search_listing"
    if not isinstance(keyword, str) or not keyword.strip():
        return _error_payload(source, "keyword must be non-empty.")
    if not isinstance(api_key, str) or not api_key.strip():
        return _error_payload(source, "Search API key is missing.")

    settings = _search_settings()
    clean_location = location.strip() if isinstance(location, str) and location.strip() else None
    known_ids = {int(job_id) for job_id in exclude_ids}
    params = build_search_params(
        keyword=keyword.strip(),
        location=clean_location,
        exclude_ids=known_ids,
        settings=settings,
    )
    request_meta = {
        "keyword": keyword.strip(),
        "location": clean_location,
        "excluded_count": len(known_ids),
    }
    url = f"{settings['base_url']}?{urlencode(params)}"
    headers = {
        "Accept": "application/json",
        "x-rapidapi-key": api_key.strip(),
        "x-rapidapi-host": settings["api_host"],
    }

    try:
        payload = _fetch_json(url, headers, settings["timeout_sec"])
    except HTTPError as exc:
        logger.error("Job search for %r failed with HTTP %s", keyword, exc.code)
        return _error_payload(source, f"Job search failed with HTTP {exc.code}.", request_meta)
    except URLError as exc:
        logger.error("Job search for %r failed: %s", keyword, exc.reason)
        return _error_payload(source, f"Job search network error: {exc.reason}", request_meta)
    except Exception as exc:
        logger.error("Job search for %r failed: %s", keyword, exc)
        return _error_payload(source, f"Job search failed: {exc}", request_meta)

    jobs = _jobs_from_payload(payload)
    logger.info("Job search %r returned %d posting(s)", keyword, len(jobs))
    return {
        "ok": True,
        "provider": "job_search",
        "source": source,
        "request": request_meta,
        "jobs": jobs,
        "jobs_count": len(jobs),
        "error": None,
    }
