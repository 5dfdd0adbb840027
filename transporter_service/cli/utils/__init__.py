"""CLI helpers."""

from .async_runner import coro
from .formatters import error, info, success, table, warning, work_summary

__all__ = ["coro", "error", "info", "success", "table", "warning", "work_summary"]
