"""Utility modules for tTimeline.

This package provides the time expression parser and time formatting helpers.

Modules:
    time_utils: Time token parsing, formatting and grid rounding
"""
from utils.time_utils import (
    parse_time,
    parse_task_time,
    parse_duration_string,
    format_clock,
    format_duration,
    format_duration_suffix,
    format_task_tokens,
    round_to_interval,
    align_to_interval,
    time_status,
)

__all__ = [
    "parse_time",
    "parse_task_time",
    "parse_duration_string",
    "format_clock",
    "format_duration",
    "format_duration_suffix",
    "format_task_tokens",
    "round_to_interval",
    "align_to_interval",
    "time_status",
]
