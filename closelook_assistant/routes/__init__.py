# closelook_assistant/routes/__init__.py
"""
HTTP surface of the assistant.

Each module exposes a flask.Blueprint named **bp**; the app factory
registers them under `/rs`. Shared objects (`ctx_mgr`, `assistant_core`)
live in `app.extensions` and are reached through `current_app`.
"""

from __future__ import annotations

from flask import Blueprint, Flask

from .chat import bp as chat_bp
from .health import bp as health_bp
from .reset import bp as reset_bp

BLUEPRINTS: list[Blueprint] = [chat_bp, health_bp, reset_bp]


def register_routes(app: Flask, url_prefix: str = "/rs") -> None:
    for bp in BLUEPRINTS:
        app.register_blueprint(bp, url_prefix=url_prefix)
