"""
Configuration for the assistant backend.
Class-per-environment, resolved once per call to get_config() and then
passed explicitly into the pipeline components.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

BASE_DIR = Path(__file__).resolve().parent.parent

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


def _json_env(name: str) -> Dict[str, Any]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logging.getLogger(__name__).warning(f"CONFIG_BAD_JSON | var={name}")
        return {}
    return data if isinstance(data, dict) else {}


class BaseConfig:
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-change-me")
    JSON_SORT_KEYS: bool = False

    # Redis (conversation transcripts)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB: int = int(os.getenv("REDIS_DB", 0))
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", 3600))

    # Anthropic - MUST be set via environment variable
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")

    # LLM
    LLM_MODEL: str = os.getenv("LLM_MODEL", "claude-3-5-sonnet-20241022")
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "1000"))
    INTENT_LLM_ENABLED: bool = _flag("INTENT_LLM_ENABLED", "true")
    INTENT_TEMPERATURE: float = float(os.getenv("INTENT_TEMPERATURE", "0.2"))
    INTENT_MAX_TOKENS: int = int(os.getenv("INTENT_MAX_TOKENS", "512"))

    # Timeouts (seconds)
    LLM_REPLY_TIMEOUT_SECONDS: float = float(os.getenv("LLM_REPLY_TIMEOUT_SECONDS", "30"))
    TICKET_TIMEOUT_SECONDS: float = float(os.getenv("TICKET_TIMEOUT_SECONDS", "10"))
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Retrieval
    SMALL_CATALOG_THRESHOLD: int = int(os.getenv("SMALL_CATALOG_THRESHOLD", "50"))
    SCORING_WEIGHTS: Dict[str, Any] = _json_env("SCORING_WEIGHTS_JSON")

    # Conversation / presentation
    HISTORY_MAX_TURNS: int = int(os.getenv("HISTORY_MAX_TURNS", "50"))
    MAX_RECOMMENDATIONS: int = int(os.getenv("MAX_RECOMMENDATIONS", "10"))
    ESCALATION_MIN_TURNS: int = int(os.getenv("ESCALATION_MIN_TURNS", "2"))

    # Collaborators
    CATALOG_PATH: str = os.getenv("CATALOG_PATH", "")
    CATALOG_URL: str = os.getenv("CATALOG_URL", "")
    TICKET_API_URL: str = os.getenv("TICKET_API_URL", "")
    COMMERCE_API_BASE: str = os.getenv("COMMERCE_API_BASE", "").strip().rstrip("/")
    COMMERCE_API_TOKEN: str = os.getenv("COMMERCE_API_TOKEN", "")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


class DevelopmentConfig(BaseConfig):
    DEBUG: bool = True


class ProductionConfig(BaseConfig):
    DEBUG: bool = False
    REDIS_TTL_SECONDS: int = int(os.getenv("REDIS_TTL_SECONDS", "900"))


class TestingConfig(BaseConfig):
    TESTING: bool = True
    REDIS_DB: int = 15
    INTENT_LLM_ENABLED: bool = False


def get_config() -> BaseConfig:
    """Get configuration instance directly - no complex manager."""
    env = os.getenv("APP_ENV", os.getenv("FLASK_ENV", "development")).lower()
    mapping = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
        "test": TestingConfig,
    }
    config_class = mapping.get(env, DevelopmentConfig)
    cfg = config_class()

    log = logging.getLogger(__name__)
    if not hasattr(get_config, "_logged_startup"):
        log.info(f"⚙️ CONFIG_STARTUP | env={env} | config_class={config_class.__name__}")
        log.info(f"🤖 LLM_CONFIG | model={cfg.LLM_MODEL} | temp={cfg.LLM_TEMPERATURE} | max_tokens={cfg.LLM_MAX_TOKENS} | intent_llm={cfg.INTENT_LLM_ENABLED}")
        log.info(f"⏱️ TIMEOUTS | reply={cfg.LLM_REPLY_TIMEOUT_SECONDS}s | ticket={cfg.TICKET_TIMEOUT_SECONDS}s")
        log.info(f"🔍 RETRIEVAL_CONFIG | small_catalog_threshold={cfg.SMALL_CATALOG_THRESHOLD} | weight_overrides={sorted(cfg.SCORING_WEIGHTS)}")
        log.info(f"💾 REDIS_CONFIG | host={cfg.REDIS_HOST} | port={cfg.REDIS_PORT} | db={cfg.REDIS_DB} | ttl={cfg.REDIS_TTL_SECONDS}s")
        get_config._logged_startup = True

    return cfg
