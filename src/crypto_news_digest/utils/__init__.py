from .common import (
    clamp,
    clean_text,
    format_kst,
    parse_datetime_utc,
    struct_time_to_utc,
    to_number,
    truncate,
)

__all__ = [
    "clamp",
    "clean_text",
    "format_kst",
    "parse_datetime_utc",
    "struct_time_to_utc",
    "to_number",
    "truncate",
]
