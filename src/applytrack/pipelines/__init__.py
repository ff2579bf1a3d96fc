"""Handlers that combine the service adapters into the tracker's operations."""

from .cover_letters import drain_cover_letters, process_next_cover_letter, requeue_cover_letters
from .discover_jobs import run_job_search
from .status_edits import handle_status_edit

__all__ = [
    "drain_cover_letters",
    "handle_status_edit",
    "process_next_cover_letter",
    "requeue_cover_letters",
    "run_job_search",
]
