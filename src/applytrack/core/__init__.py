"""Core runtime utilities for applytrack."""

from .config_loader import (
    clear_config_cache,
    get_daemon_config,
    get_logging_config,
    get_model_config,
    get_provider_config,
    get_tool_block,
    load_config,
    resolve_config_path,
)
from .jobs_schema import JOB_COLUMNS, JobRecord
from .llm_client import call_llm
from .log_config import configure_logging
from .pay import format_pay, hourly_rate
from .settings import Settings

__all__ = [
    "JOB_COLUMNS",
    "JobRecord",
    "Settings",
    "call_llm",
    "clear_config_cache",
    "configure_logging",
    "format_pay",
    "get_daemon_config",
    "get_logging_config",
    "get_model_config",
    "get_provider_config",
    "get_tool_block",
    "hourly_rate",
    "load_config",
    "resolve_config_path",
]
