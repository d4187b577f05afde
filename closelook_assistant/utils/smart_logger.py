# closelook_assistant/utils/smart_logger.py
"""
Smart, modular logging for the assistant pipeline.
Provides clean, contextual flow logs with configurable verbosity levels.
"""

import logging
import os
import sys
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    MINIMAL = 1      # Only critical flow events
    STANDARD = 2     # Key decisions and state changes
    DETAILED = 3     # Include candidate counts and timing
    DEBUG = 4        # Everything including API calls


class SmartLogger:
    def __init__(self, name: str, level: LogLevel = LogLevel.STANDARD):
        self.logger = logging.getLogger(name)
        self.level = level
        self._request_contexts: Dict[str, str] = {}

    def set_level(self, level: LogLevel):
        """Change logging verbosity at runtime"""
        self.level = level

    def _should_log(self, required_level: LogLevel) -> bool:
        return self.level.value >= required_level.value

    def _format_request_id(self, session_id: str) -> str:
        timestamp = datetime.now().strftime('%H%M%S')
        return f"{session_id[-6:]}_{timestamp}"

    def _clean_log(self, level: str, emoji: str, category: str, message: str, **kwargs):
        details = " | ".join([f"{k}={v}" for k, v in kwargs.items() if v is not None])
        if details:
            full_message = f"{emoji} {category} | {message} | {details}"
        else:
            full_message = f"{emoji} {category} | {message}"

        getattr(self.logger, level.lower())(full_message)

    def _req(self, session_id: str) -> str:
        return self._request_contexts.get(session_id, "unknown")

    # ═══════════════════════════════════════════════════════════
    # HIGH-LEVEL FLOW EVENTS
    # ═══════════════════════════════════════════════════════════

    def query_start(self, session_id: str, query: str, history_turns: int):
        if not self._should_log(LogLevel.MINIMAL):
            return

        req_id = self._format_request_id(session_id)
        self._request_contexts[session_id] = req_id

        query_preview = query[:50] + "..." if len(query) > 50 else query
        self._clean_log("info", "🚀", "QUERY_START", f"'{query_preview}'",
                        req=req_id, turns=history_turns)

    def intent_extracted(self, session_id: str, intent_kind: str, source: str):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "🧠", "INTENT", intent_kind, req=self._req(session_id), source=source)

    def retrieval_done(self, session_id: str, strategy: str, catalog_size: int, selected: int, budget: int):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "🔍", "RETRIEVAL", strategy, req=self._req(session_id),
                        catalog=catalog_size, selected=selected, budget=budget)

    def extraction_done(self, session_id: str, by_strategy: Dict[str, int], merged: int):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("info", "🧩", "EXTRACTION", f"{merged} recommendations",
                        req=self._req(session_id), **by_strategy)

    def escalation_state(self, session_id: str, state: str, ticket_created: bool = False):
        if not self._should_log(LogLevel.MINIMAL):
            return
        self._clean_log("info", "🎫", "ESCALATION", state, req=self._req(session_id),
                        ticket_created=ticket_created)

    def response_generated(self, session_id: str, recommendations: int, ticket_created: bool, elapsed_time: Optional[float] = None):
        if not self._should_log(LogLevel.MINIMAL):
            return

        extras: Dict[str, Any] = {"req": self._req(session_id), "recs": recommendations,
                                  "ticket": ticket_created}
        if elapsed_time is not None:
            extras["time"] = f"{elapsed_time:.3f}s"

        self._clean_log("info", "✅", "RESPONSE", "chat", **extras)
        self._request_contexts.pop(session_id, None)

    # ═══════════════════════════════════════════════════════════
    # DETAILED EVENTS
    # ═══════════════════════════════════════════════════════════

    def candidates(self, session_id: str, ids: List[str]):
        if not self._should_log(LogLevel.DETAILED):
            return
        preview = ",".join(ids[:10]) + ("..." if len(ids) > 10 else "")
        self._clean_log("debug", "📊", "CANDIDATES", preview, req=self._req(session_id), count=len(ids))

    def error_occurred(self, session_id: str, error_type: str, operation: str, error_msg: Optional[str] = None):
        # Errors are always logged regardless of level
        self._clean_log("error", "❌", "ERROR", f"{error_type} in {operation}",
                        req=self._req(session_id), msg=error_msg)

    def warning(self, session_id: str, warning_type: str, details: Optional[str] = None):
        if not self._should_log(LogLevel.STANDARD):
            return
        self._clean_log("warning", "⚠️", "WARNING", warning_type, req=self._req(session_id), details=details)

    # ═══════════════════════════════════════════════════════════
    # DEBUG EVENTS
    # ═══════════════════════════════════════════════════════════

    def api_call(self, session_id: str, service: str, operation: str, status: str = "started"):
        if not self._should_log(LogLevel.DEBUG):
            return
        emoji = "📡" if status == "started" else "✅" if status == "success" else "❌"
        self._clean_log("debug", emoji, "API", f"{service}.{operation}",
                        req=self._req(session_id), status=status)


# ═══════════════════════════════════════════════════════════════════════════════
# GLOBAL LOGGER INSTANCES AND CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

_loggers: Dict[str, SmartLogger] = {}


def get_smart_logger(module_name: str, level: Optional[LogLevel] = None) -> SmartLogger:
    """Get or create a smart logger for a module"""
    if module_name not in _loggers:
        default_level = getattr(LogLevel, os.getenv('BOT_LOG_LEVEL', 'STANDARD').upper(), LogLevel.STANDARD)
        _loggers[module_name] = SmartLogger(module_name, level or default_level)

    if level:
        _loggers[module_name].set_level(level)

    return _loggers[module_name]


def configure_logging(level: LogLevel = LogLevel.STANDARD,
                      format_string: Optional[str] = None,
                      silence_external: bool = True):
    """Configure the entire logging system"""
    if not format_string:
        format_string = '%(asctime)s | %(message)s'

    logging.basicConfig(
        level=logging.DEBUG if level == LogLevel.DEBUG else logging.INFO,
        format=format_string,
        datefmt='%H:%M:%S',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if silence_external:
        for noisy in ('httpcore', 'httpx', 'anthropic', 'werkzeug', 'urllib3'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    for smart_logger in _loggers.values():
        smart_logger.set_level(level)
