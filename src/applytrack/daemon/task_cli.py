"""Terminal runner for the tracker handlers."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Callable

from src.applytrack.core.jobs_schema import JOB_COLUMNS
from src.applytrack.core.log_config import configure_logging
from src.applytrack.pipelines.common import load_settings
from src.applytrack.pipelines.cover_letters import drain_cover_letters, process_next_cover_letter, requeue_cover_letters
from src.applytrack.pipelines.discover_jobs import run_job_search
from src.applytrack.pipelines.status_edits import handle_status_edit


def _show_settings() -> dict[str, Any]:
    settings, error = load_settings("settings_show")
    if error:
        return error
    return {"ok": True, "source": "settings_show", "settings": settings.masked(), "error": None}


def _edit_value(raw: str | None) -> Any:
    if raw is None:
        return None
    lowered = raw.strip().lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    return raw


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run applytrack handlers from the terminal.")
    parser.add_argument("--log-level", default=None, help="Override the configured logging level.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("search", help="Search for new jobs and append them to the sheet.")
    sub.add_parser("generate-next", help="Generate the cover letter for one pending row.")

    drain = sub.add_parser("drain", help="Generate cover letters until the queue is empty.")
    drain.add_argument("--max-items", type=int, default=None)
    drain.add_argument("--budget-sec", type=float, default=None, help="Stop starting new items after this many seconds.")

    requeue = sub.add_parser("requeue", help="Reset failed cover letters to pending.")
    requeue.add_argument("--include-generating", action="store_true", help="Also reset rows stuck in Generating...")

    edit = sub.add_parser("edit", help="Apply a checkbox edit as if made in the sheet.")
    edit.add_argument("--row", type=int, required=True, help="1-based sheet row number.")
    edit.add_argument("--column", required=True, help=f"Column letter, index or header ({', '.join(JOB_COLUMNS[10:12])}).")
    edit.add_argument("--value", default=None, help="New value (true/false); read from the sheet when omitted.")

    sub.add_parser("settings", help="Print the Settings tab with secrets masked.")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)

    commands: dict[str, Callable[[], dict[str, Any]]] = {
        "search": run_job_search,
        "generate-next": process_next_cover_letter,
        "drain": lambda: drain_cover_letters(max_items=args.max_items, time_budget_sec=args.budget_sec),
        "requeue": lambda: requeue_cover_letters(include_generating=args.include_generating),
        "edit": lambda: handle_status_edit(row_number=args.row, column=args.column, value=_edit_value(args.value)),
        "settings": _show_settings,
    }
    result = commands[args.command]()
    json.dump(result, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0 if result.get("ok") else 1


if __name__ == "__main__":
    raise SystemExit(main())
