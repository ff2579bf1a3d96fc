from __future__ import annotations

from src.applytrack.core.jobs_schema import COVER_LETTER_PENDING
from src.applytrack.core.settings import Settings
from src.applytrack.pipelines import discover_jobs


def _settings(**overrides) -> Settings:
    values = {
        "Search API Key": "rapid-key",
        "Search Keywords": "analyst, engineer",
        "Search Location": "Ohio",
        "Notification Email": "me@example.com",
    }
    values.update(overrides)
    return Settings.from_values(values)


def test_posting_to_record_maps_search_fields():
    record = discover_jobs.posting_to_record(
        {
            "id": "1234",
            "title": "Data Analyst",
            "organization": "Acme",
            "url": "https://jobs.test/1234",
            "date_posted": "2026-02-01T10:00:00",
            "employment_type": ["FULL_TIME", "CONTRACTOR"],
            "salary_raw": {
                "@type": "MonetaryAmount",
                "currency": "USD",
                "value": {"@type": "QuantitativeValue", "minValue": 40000, "maxValue": 60000, "unitText": "YEAR"},
            },
            "linkedin_org_industry": "Software Development",
            "recruiter_name": "Pat Lee",
            "recruiter_url": "https://linkedin.test/pat",
            "description_text": "Build dashboards.",
        }
    )
    assert record is not None
    assert record.job_id == 1234
    assert record.company == "Acme"
    assert record.pay == "USD 40000-60000 per year"
    assert record.hourly_rate == 24.04
    assert record.date_posted == "2026-02-01"
    assert record.employment_status == "FULL_TIME, CONTRACTOR"
    assert record.hiring_manager == "Pat Lee"
    assert record.hiring_manager_link == "https://linkedin.test/pat"
    assert record.description == "Build dashboards."
    assert record.applied is False and record.not_applying is False
    assert record.cover_letter == COVER_LETTER_PENDING


def test_posting_to_record_without_pay_or_id():
    record = discover_jobs.posting_to_record({"id": 9, "title": "Intern"})
    assert record is not None
    assert record.pay == ""
    assert record.hourly_rate is None
    assert discover_jobs.posting_to_record({"title": "No id"}) is None
    assert discover_jobs.posting_to_record({"id": "abc"}) is None


def test_run_job_search_grows_exclusion_set_and_appends(monkeypatch):
    searches: list[dict] = []
    appended: list = []
    emails: list[dict] = []
    results = {
        "analyst": [{"id": 2, "title": "Analyst", "salary_raw": "$30/hr"}, {"title": "missing id"}],
        "engineer": [{"id": 3, "title": "Engineer"}],
    }

    def fake_search_jobs(*, keyword, api_key, location=None, exclude_ids=()):
        searches.append({"keyword": keyword, "api_key": api_key, "location": location, "exclude": set(exclude_ids)})
        return {"ok": True, "jobs": results[keyword]}

    monkeypatch.setattr(discover_jobs, "load_settings", lambda source: (_settings(), None))
    monkeypatch.setattr(discover_jobs, "list_job_ids", lambda: {"ok": True, "job_ids": [1]})
    monkeypatch.setattr(discover_jobs, "search_jobs", fake_search_jobs)
    monkeypatch.setattr(
        discover_jobs,
        "append_job_rows",
        lambda *, records: appended.extend(records) or {"ok": True, "updated_rows": len(records)},
    )
    monkeypatch.setattr(discover_jobs, "sort_job_rows", lambda: {"ok": True})
    monkeypatch.setattr(discover_jobs, "send_email", lambda **kwargs: emails.append(kwargs) or {"ok": True})

    out = discover_jobs.run_job_search()
    assert out["ok"] is True
    assert out["added"] == 2
    assert out["sorted"] is True
    assert out["notified"] is True
    assert searches[0] == {"keyword": "analyst", "api_key": "rapid-key", "location": "Ohio", "exclude": {1}}
    assert searches[1]["exclude"] == {1, 2}
    assert [record.job_id for record in appended] == [2, 3]
    assert appended[0].hourly_rate == 30.0
    assert emails[0]["to"] == "me@example.com"
    assert emails[0]["subject"] == "2 new job(s) found"
    assert "Analyst" in emails[0]["body"]


def test_run_job_search_nothing_new_skips_writes(monkeypatch):
    monkeypatch.setattr(discover_jobs, "load_settings", lambda source: (_settings(), None))
    monkeypatch.setattr(discover_jobs, "list_job_ids", lambda: {"ok": True, "job_ids": []})
    monkeypatch.setattr(discover_jobs, "search_jobs", lambda **kwargs: {"ok": True, "jobs": []})

    def fail(**kwargs):
        raise AssertionError("no write expected")

    monkeypatch.setattr(discover_jobs, "append_job_rows", fail)
    monkeypatch.setattr(discover_jobs, "send_email", fail)
    out = discover_jobs.run_job_search()
    assert out["ok"] is True
    assert out["added"] == 0
    assert out["notified"] is False


def test_run_job_search_requires_settings(monkeypatch):
    monkeypatch.setattr(discover_jobs, "load_settings", lambda source: (_settings(**{"Search Keywords": ""}), None))
    out = discover_jobs.run_job_search()
    assert out["ok"] is False
    assert out["missing"] == ["Search Keywords"]


def test_run_job_search_keyword_failure_does_not_abort_others(monkeypatch):
    def fake_search_jobs(*, keyword, api_key, location=None, exclude_ids=()):
        if keyword == "analyst":
            return {"ok": False, "error": "Job search failed with HTTP 429."}
        return {"ok": True, "jobs": [{"id": 8, "title": "Engineer"}]}

    monkeypatch.setattr(discover_jobs, "load_settings", lambda source: (_settings(**{"Notification Email": ""}), None))
    monkeypatch.setattr(discover_jobs, "list_job_ids", lambda: {"ok": True, "job_ids": []})
    monkeypatch.setattr(discover_jobs, "search_jobs", fake_search_jobs)
    monkeypatch.setattr(discover_jobs, "append_job_rows", lambda *, records: {"ok": True})
    monkeypatch.setattr(discover_jobs, "sort_job_rows", lambda: {"ok": False, "error": "quota"})

    out = discover_jobs.run_job_search()
    assert out["ok"] is True
    assert out["added"] == 1
    assert out["sorted"] is False
    assert out["error"] == "analyst: Job search failed with HTTP 429."
    assert out["searches"][0]["ok"] is False


def test_run_job_search_fails_when_ids_unreadable(monkeypatch):
    monkeypatch.setattr(discover_jobs, "load_settings", lambda source: (_settings(), None))
    monkeypatch.setattr(discover_jobs, "list_job_ids", lambda: {"ok": False, "error": "auth"})
    out = discover_jobs.run_job_search()
    assert out["ok"] is False
    assert "auth" in out["error"]
