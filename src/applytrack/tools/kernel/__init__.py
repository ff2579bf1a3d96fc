"""Kernel-level service adapters."""

from .gmail import send_email
from .google_auth import get_google_access_token
from .google_drive_docs import create_google_doc, export_doc_text, set_file_trashed
from .google_sheets_jobs import (
    append_job_rows,
    get_job_row,
    list_job_ids,
    list_job_rows,
    read_settings_values,
    sort_job_rows,
    update_job_cell,
)
from .job_search import search_jobs

__all__ = [
    "append_job_rows",
    "create_google_doc",
    "export_doc_text",
    "get_google_access_token",
    "get_job_row",
    "list_job_ids",
    "list_job_rows",
    "read_settings_values",
    "search_jobs",
    "send_email",
    "set_file_trashed",
    "sort_job_rows",
    "update_job_cell",
]
