"""
Closelook shopping assistant: application factory
=================================================

Initialization order:
1. Redis transcript store (health-checked)
2. Collaborators: LLM client, catalog provider, ticket client
3. Assistant core
4. Routes under /rs and error handlers
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .bot_core import AssistantCore
from .catalog_provider import CatalogProvider, HttpCatalogProvider, StaticCatalogProvider
from .config import BaseConfig, get_config
from .llm_service import LLMService
from .redis_manager import RedisContextManager
from .ticketing import HttpTicketClient, LoggingTicketClient, TicketClient
from .utils.helpers import iso_now

log = logging.getLogger(__name__)

__version__ = "1.0.0"


def _build_catalog(cfg: BaseConfig) -> CatalogProvider:
    if cfg.CATALOG_PATH:
        return StaticCatalogProvider.from_json_file(cfg.CATALOG_PATH)
    if cfg.CATALOG_URL:
        return HttpCatalogProvider(cfg.CATALOG_URL, timeout=cfg.HTTP_TIMEOUT_SECONDS)
    log.warning("INIT_CATALOG | no CATALOG_PATH or CATALOG_URL configured, serving an empty catalog")
    return StaticCatalogProvider([])


def _build_ticket_client(cfg: BaseConfig) -> TicketClient:
    if cfg.TICKET_API_URL:
        return HttpTicketClient(
            cfg.TICKET_API_URL,
            timeout=cfg.TICKET_TIMEOUT_SECONDS,
            token=cfg.COMMERCE_API_TOKEN,
        )
    log.info("INIT_TICKETS | TICKET_API_URL not set, tickets are logged only")
    return LoggingTicketClient()


def _init_redis(cfg: BaseConfig) -> RedisContextManager:
    log.info("INIT_REDIS | starting Redis connection")
    ctx_mgr = RedisContextManager(config=cfg)
    health = ctx_mgr.health_check()
    if not health.get("ping_success", False):
        log.error(f"INIT_REDIS_FAILED | health={health}")
        raise RuntimeError(f"Redis connection failed: {health.get('error')}")
    if not health.get("connection_healthy"):
        log.warning(f"INIT_REDIS_WARNING | full health check failed but ping succeeded | health={health}")
    log.info(f"INIT_REDIS_SUCCESS | memory_usage={health.get('memory_info', {}).get('used_memory_human', 'unknown')}")
    return ctx_mgr


def create_app(
    config: Optional[BaseConfig] = None,
    *,
    core: Optional[AssistantCore] = None,
    ctx_mgr: Optional[RedisContextManager] = None,
) -> Flask:
    """
    Build the Flask app. `core` and `ctx_mgr` may be injected (tests, custom
    deployments); otherwise they are built from configuration.
    """
    cfg = config or get_config()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = cfg.SECRET_KEY
    app.config["JSON_SORT_KEYS"] = cfg.JSON_SORT_KEYS

    cors_origins_env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if cors_origins_env:
        allowed_origins = [o.strip() for o in cors_origins_env.split(",") if o.strip()]
    else:
        allowed_origins = ["*"]

    CORS(
        app,
        resources={r"/rs/*": {
            "origins": allowed_origins,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"],
        }},
        supports_credentials=False,
    )

    # ────────────────────────────────────────────────────────
    # STEP 1: Transcript store
    # ────────────────────────────────────────────────────────
    if ctx_mgr is None:
        try:
            ctx_mgr = _init_redis(cfg)
        except Exception as e:
            log.error(f"INIT_REDIS_ERROR | error={e}", exc_info=True)
            raise RuntimeError(f"Failed to initialize Redis: {e}")
    app.extensions["ctx_mgr"] = ctx_mgr

    # ────────────────────────────────────────────────────────
    # STEP 2: Assistant core
    # ────────────────────────────────────────────────────────
    if core is None:
        try:
            log.info("INIT_ASSISTANT_CORE | building collaborators")
            core = AssistantCore(
                LLMService(cfg),
                _build_catalog(cfg),
                _build_ticket_client(cfg),
                config=cfg,
            )
        except Exception as e:
            log.error(f"INIT_ASSISTANT_CORE_ERROR | error={e}", exc_info=True)
            raise RuntimeError(f"Failed to initialize assistant core: {e}")
    app.extensions["assistant_core"] = core

    # ────────────────────────────────────────────────────────
    # STEP 3: Routes
    # ────────────────────────────────────────────────────────
    from .routes import register_routes

    register_routes(app, url_prefix="/rs")
    log.info("REGISTER_ROUTES_SUCCESS | /rs/chat /rs/health /rs/reset")

    # ────────────────────────────────────────────────────────
    # STEP 4: Error handlers
    # ────────────────────────────────────────────────────────
    @app.errorhandler(500)
    def handle_internal_error(error):
        log.error(f"INTERNAL_ERROR | error={error}", exc_info=True)
        return {
            "error": "Internal server error",
            "timestamp": iso_now(),
            "details": str(error) if app.debug else "Contact support",
        }, 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return {
            "error": "Endpoint not found",
            "timestamp": iso_now(),
        }, 404

    log.info(f"APP_INIT_COMPLETE | extensions={list(app.extensions.keys())}")
    return app
