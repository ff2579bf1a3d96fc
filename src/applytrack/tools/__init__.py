"""Service adapters for applytrack."""

from .kernel import (
    append_job_rows,
    create_google_doc,
    export_doc_text,
    get_google_access_token,
    get_job_row,
    list_job_ids,
    list_job_rows,
    read_settings_values,
    search_jobs,
    send_email,
    set_file_trashed,
    sort_job_rows,
    update_job_cell,
)

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
