"""
Utility helpers
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} block in text, honouring JSON strings."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
                continue
            if ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def extract_json_block(text: str) -> Dict[str, Any]:
    block = find_json_object(text)
    if not block:
        return {}
    try:
        data = json.loads(block)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def iso_now() -> str:
    return datetime.now().isoformat()


def trim_history(history: List[Any], max_len: int) -> None:
    if max_len <= 0:
        return
    overflow = len(history) - max_len
    if overflow > 0:
        del history[:overflow]


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]

