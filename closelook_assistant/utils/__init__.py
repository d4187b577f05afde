# closelook_assistant/utils/__init__.py
"""
Expose helpers at package-level for convenience:

    from closelook_assistant.utils import extract_json_block
"""

from .helpers import (  # noqa: F401
    extract_json_block,
    find_json_object,
    iso_now,
    trim_history,
    truncate,
)

__all__ = [
    "extract_json_block",
    "find_json_object",
    "iso_now",
    "trim_history",
    "truncate",
]
