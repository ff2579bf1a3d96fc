"""Daemon entrypoint: serve the HTTP app, or run the time-based handler loop."""

from __future__ import annotations

import argparse
import logging
import signal
from threading import Event
from time import monotonic
from typing import Any, Callable

from src.applytrack.core.config_loader import get_daemon_config
from src.applytrack.core.log_config import configure_logging
from src.applytrack.pipelines.cover_letters import process_next_cover_letter
from src.applytrack.pipelines.discover_jobs import run_job_search

logger = logging.getLogger(__name__)


def _install_signal_handlers(stop_event: Event) -> None:
    def _handler(_sig, _frame) -> None:  # type: ignore[no-untyped-def]
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _run_job(name: str, fn: Callable[[], dict[str, Any]]) -> None:
    try:
        result = fn()
    except Exception:
        logger.exception("Scheduled %s crashed", name)
        return
    if not result.get("ok"):
        logger.error("Scheduled %s failed: %s", name, result.get("error"))
    else:
        logger.debug("Scheduled %s finished: %s", name, {k: v for k, v in result.items() if k != "results"})


def run_scheduler_loop(
    *,
    cover_letter_interval_sec: float,
    job_search_interval_sec: float,
    stop_event: Event,
    tick_sec: float = 0.5,
) -> int:
    """Invoke the handlers on fixed intervals until `stop_event` is set.

    Handlers run one after another on this thread, so the single-item cover
    letter step never overlaps itself. An interval of 0 disables that handler.
    """
    schedule: list[tuple[str, Callable[[], dict[str, Any]], float]] = []
    if cover_letter_interval_sec > 0:
        schedule.append(("cover letter", process_next_cover_letter, cover_letter_interval_sec))
    if job_search_interval_sec > 0:
        schedule.append(("job search", run_job_search, job_search_interval_sec))

    next_due = {name: monotonic() for name, _, _ in schedule}
    runs = 0
    while not stop_event.is_set():
        for name, fn, interval in schedule:
            if stop_event.is_set():
                break
            if monotonic() >= next_due[name]:
                _run_job(name, fn)
                runs += 1
                next_due[name] = monotonic() + interval
        stop_event.wait(timeout=max(0.05, tick_sec))
    return runs


def run_daemon(
    *,
    with_app: bool = True,
    host: str = "127.0.0.1",
    port: int = 8000,
    tick_sec: float = 0.5,
    stop_event: Event | None = None,
) -> int:
    configure_logging()
    if with_app:
        try:
            import uvicorn
        except Exception as exc:  # pragma: no cover - dependency error guard
            raise RuntimeError("uvicorn is required for daemon app mode") from exc

        logger.info("Serving applytrack app on %s:%s", host, port)
        uvicorn.run("app.main:app", host=host, port=port, reload=False)
        return 0

    daemon_cfg = get_daemon_config()
    signal_event = stop_event or Event()
    if stop_event is None:
        _install_signal_handlers(signal_event)
    logger.info(
        "Starting scheduler loop (cover letters every %ss, job search every %ss)",
        daemon_cfg["cover_letter_interval_sec"],
        daemon_cfg["job_search_interval_sec"],
    )
    run_scheduler_loop(
        cover_letter_interval_sec=daemon_cfg["cover_letter_interval_sec"],
        job_search_interval_sec=daemon_cfg["job_search_interval_sec"],
        stop_event=signal_event,
        tick_sec=tick_sec,
    )
    logger.info("Scheduler loop stopped")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run the applytrack daemon.")
    parser.add_argument("--host", default="127.0.0.1", help="Local bind host for app mode.")
    parser.add_argument("--port", type=int, default=8000, help="Local bind port for app mode.")
    parser.add_argument(
        "--no-app",
        action="store_true",
        help="Run the time-based handler loop instead of the HTTP app.",
    )
    parser.add_argument(
        "--tick-sec",
        type=float,
        default=0.5,
        help="Poll interval of the handler loop.",
    )
    args = parser.parse_args(argv)
    return run_daemon(
        with_app=not args.no_app,
        host=args.host,
        port=args.port,
        tick_sec=max(0.05, float(args.tick_sec)),
    )


if __name__ == "__main__":
    raise SystemExit(main())
