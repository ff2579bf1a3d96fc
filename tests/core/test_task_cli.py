from __future__ import annotations

import json

import pytest

from src.applytrack.daemon import task_cli


def test_edit_value_parses_booleans():
    assert task_cli._edit_value(None) is None
    assert task_cli._edit_value("TRUE") is True
    assert task_cli._edit_value("false") is False
    assert task_cli._edit_value("maybe") == "maybe"


def test_main_edit_forwards_arguments(monkeypatch: pytest.MonkeyPatch, capsys):
    called: dict = {}

    def fake_handle_status_edit(**kwargs):
        called.update(kwargs)
        return {"ok": True, "source": "status_edit", "handled": True}

    monkeypatch.setattr(task_cli, "handle_status_edit", fake_handle_status_edit)
    rc = task_cli.main(["edit", "--row", "5", "--column", "L", "--value", "true"])
    assert rc == 0
    assert called == {"row_number": 5, "column": "L", "value": True}
    assert json.loads(capsys.readouterr().out)["handled"] is True


def test_main_drain_passes_limits(monkeypatch: pytest.MonkeyPatch):
    called: dict = {}

    def fake_drain(**kwargs):
        called.update(kwargs)
        return {"ok": True, "processed": 0}

    monkeypatch.setattr(task_cli, "drain_cover_letters", fake_drain)
    rc = task_cli.main(["drain", "--max-items", "3", "--budget-sec", "30"])
    assert rc == 0
    assert called == {"max_items": 3, "time_budget_sec": 30.0}


def test_main_returns_nonzero_on_failure(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(task_cli, "run_job_search", lambda: {"ok": False, "error": "Missing settings: Search Keywords"})
    assert task_cli.main(["search"]) == 1


def test_main_settings_masks_secrets(monkeypatch: pytest.MonkeyPatch, capsys):
    from src.applytrack.core.settings import Settings

    monkeypatch.setattr(
        task_cli,
        "load_settings",
        lambda source: (Settings.from_values({"Search API Key": "abcdefghijkl"}), None),
    )
    rc = task_cli.main(["settings"])
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["settings"]["search api key"] == "***ijkl"
