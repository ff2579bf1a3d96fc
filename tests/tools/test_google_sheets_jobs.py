import importlib
import json
from pathlib import Path

import pytest

from src.applytrack.core.config_loader import clear_config_cache
from src.applytrack.core.jobs_schema import JobRecord
from src.applytrack.tools.kernel.google_sheets_jobs import (
    append_job_rows,
    build_sort_request,
    get_job_row,
    list_job_ids,
    list_job_rows,
    read_settings_values,
    sort_job_rows,
    update_job_cell,
)

module = importlib.import_module("src.applytrack.tools.kernel.google_sheets_jobs")


def _write_config(path: Path, payload: dict):
    path.write_text(json.dumps(payload), encoding="utf-8")


@pytest.fixture()
def configured_sheets(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    config_path = tmp_path / "config.json"
    _write_config(
        config_path,
        {
            "tool_profiles": {
                "user_specific": {
                    "google_sheets": {"spreadsheet_id": "sheet-123", "timeout_sec": 9},
                }
            }
        },
    )
    monkeypatch.setenv("APPLYTRACK_CONFIG_PATH", str(config_path))
    clear_config_cache()
    monkeypatch.setattr(module, "get_google_access_token", lambda: {"ok": True, "access_token": "token"})
    return True


def test_missing_spreadsheet_id(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    config_path = tmp_path / "config.json"
    _write_config(config_path, {"tool_profiles": {"user_specific": {"google_sheets": {}}}})
    monkeypatch.setenv("APPLYTRACK_CONFIG_PATH", str(config_path))
    clear_config_cache()

    out = list_job_rows()
    assert out["ok"] is False
    assert "spreadsheet_id" in out["error"]


def test_auth_failure_is_reported(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(module, "get_google_access_token", lambda: {"ok": False, "error": "no token"})
    out = read_settings_values()
    assert out["ok"] is False
    assert "Google auth failed: no token" in out["error"]


def test_read_settings_values_maps_key_value_rows(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    def fake_fetch_json(url: str, headers: dict[str, str], timeout_sec: int):
        assert "%27Settings%27!A:B" in url
        assert "valueRenderOption=FORMULA" in url
        assert headers["Authorization"] == "Bearer token"
        assert timeout_sec == 9
        return {"values": [["Search Keywords", "analyst"], ["Search Location"], [], ["", "orphan"], ["Count", 3]]}

    monkeypatch.setattr(module, "_fetch_json", fake_fetch_json)
    out = read_settings_values()
    assert out["ok"] is True
    assert out["values"] == {"Search Keywords": "analyst", "Search Location": "", "Count": "3"}


def test_list_job_rows_skips_rows_without_id(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    def fake_fetch_json(url: str, headers: dict[str, str], timeout_sec: int):
        assert "%27Jobs%27!A2:N" in url
        return {
            "values": [
                [101, "Engineer", "Acme", "", "", '=HYPERLINK("https://jobs.test/101","Apply")'],
                ["", "blank"],
                [102, "Analyst", "Beta", "", 25, "", "", "", "", "", False, True, "Pending..."],
            ]
        }

    monkeypatch.setattr(module, "_fetch_json", fake_fetch_json)
    out = list_job_rows()
    assert out["ok"] is True
    assert out["rows_count"] == 2
    assert [row["row_number"] for row in out["rows"]] == [2, 4]
    assert out["rows"][0]["record"].link == "https://jobs.test/101"
    assert out["rows"][1]["record"].not_applying is True


def test_list_job_rows_fetch_error(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    def boom(url, headers, timeout_sec):
        raise OSError("connection reset")

    monkeypatch.setattr(module, "_fetch_json", boom)
    out = list_job_rows()
    assert out["ok"] is False
    assert out["error"] == "Failed to read job rows: connection reset"


def test_get_job_row_reads_single_row(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(
        module,
        "_fetch_json",
        lambda url, headers, timeout_sec: {"values": [[7, "Role"]]} if "A5:N5" in url else {},
    )
    out = get_job_row(row_number=5)
    assert out["ok"] is True
    assert out["record"].job_id == 7
    assert get_job_row(row_number=1)["ok"] is False


def test_list_job_ids_maps_rows(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    def fake_fetch_json(url: str, headers: dict[str, str], timeout_sec: int):
        assert "A2:A" in url
        assert "UNFORMATTED_VALUE" in url
        return {"values": [[30], [], ["10"], [30], ["x"]]}

    monkeypatch.setattr(module, "_fetch_json", fake_fetch_json)
    out = list_job_ids()
    assert out["job_ids"] == [10, 30]
    assert out["rows_by_id"] == {30: 2, 10: 4}


def test_append_job_rows_posts_user_entered(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    captured: dict = {}

    def fake_post_json(url: str, headers: dict[str, str], payload: dict, timeout_sec: int):
        captured["url"] = url
        captured["payload"] = payload
        return {"updates": {"updatedRows": 2, "updatedRange": "Jobs!A5:N6"}}

    monkeypatch.setattr(module, "_post_json", fake_post_json)
    out = append_job_rows(records=[JobRecord(job_id=1, link="https://jobs.test/1"), JobRecord(job_id=2)])
    assert out["ok"] is True
    assert out["updated_rows"] == 2
    assert ":append?" in captured["url"]
    assert "valueInputOption=USER_ENTERED" in captured["url"]
    assert "insertDataOption=INSERT_ROWS" in captured["url"]
    assert captured["payload"]["values"][0][5] == '=HYPERLINK("https://jobs.test/1","Apply")'


def test_append_job_rows_empty_is_noop(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(module, "_post_json", lambda *args: (_ for _ in ()).throw(AssertionError("no write")))
    out = append_job_rows(records=[])
    assert out["ok"] is True
    assert out["updated_rows"] == 0


def test_update_job_cell_writes_by_header(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    captured: dict = {}

    def fake_put_json(url: str, headers: dict[str, str], payload: dict, timeout_sec: int):
        captured["url"] = url
        captured["payload"] = payload
        return {"updatedRange": "Jobs!M7"}

    monkeypatch.setattr(module, "_put_json", fake_put_json)
    out = update_job_cell(row_number=7, column="Cover Letter", value="Generating...")
    assert out["ok"] is True
    assert "%27Jobs%27!M7?" in captured["url"]
    assert captured["payload"] == {"values": [["Generating..."]]}
    assert update_job_cell(row_number=7, column="Nope", value="x")["ok"] is False


def test_build_sort_request_order():
    request = build_sort_request(55)["sortRange"]
    assert request["range"] == {"sheetId": 55, "startRowIndex": 1, "startColumnIndex": 0, "endColumnIndex": 14}
    assert request["sortSpecs"] == [
        {"dimensionIndex": 11, "sortOrder": "ASCENDING"},
        {"dimensionIndex": 10, "sortOrder": "ASCENDING"},
        {"dimensionIndex": 4, "sortOrder": "DESCENDING"},
    ]


def test_sort_job_rows_resolves_sheet_id(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    captured: dict = {}
    monkeypatch.setattr(
        module,
        "_fetch_json",
        lambda url, headers, timeout_sec: {
            "sheets": [
                {"properties": {"sheetId": 0, "title": "Settings"}},
                {"properties": {"sheetId": 812, "title": "Jobs"}},
            ]
        },
    )

    def fake_post_json(url: str, headers: dict[str, str], payload: dict, timeout_sec: int):
        captured["url"] = url
        captured["payload"] = payload
        return {}

    monkeypatch.setattr(module, "_post_json", fake_post_json)
    out = sort_job_rows()
    assert out["ok"] is True
    assert out["sheet_id"] == 812
    assert captured["url"].endswith("sheet-123:batchUpdate")
    assert captured["payload"]["requests"][0]["sortRange"]["range"]["sheetId"] == 812


def test_sort_job_rows_missing_tab(configured_sheets, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(module, "_fetch_json", lambda url, headers, timeout_sec: {"sheets": []})
    out = sort_job_rows()
    assert out["ok"] is False
    assert "Sheet tab not found" in out["error"]
