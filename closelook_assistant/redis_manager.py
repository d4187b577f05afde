"""
Redis transcript store
======================

Keeps each chat session's conversation as a JSON list under
`session:<id>:transcript`, refreshed with a TTL on every write and capped at
the configured number of turns. Escalation state is derived from this
transcript, so nothing else needs persisting.
"""
from __future__ import annotations

import json
import logging
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from .config import BaseConfig, get_config
from .models import ConversationTurn
from .utils.helpers import trim_history

log = logging.getLogger(__name__)


class RedisContextManager:
    def __init__(self, client: redis.Redis | None = None, config: Optional[BaseConfig] = None):
        self.config = config or get_config()
        self.redis: redis.Redis = client or redis.Redis(
            host=self.config.REDIS_HOST,
            port=self.config.REDIS_PORT,
            db=self.config.REDIS_DB,
            decode_responses=self.config.REDIS_DECODE_RESPONSES,
            socket_timeout=10,
            socket_connect_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        self.ttl = timedelta(seconds=self.config.REDIS_TTL_SECONDS)
        self.max_turns = int(self.config.HISTORY_MAX_TURNS)

    @staticmethod
    def _key(session_id: str) -> str:
        return f"session:{session_id}:transcript"

    # ────────────────────────────────────────────────────────
    # Public API
    # ────────────────────────────────────────────────────────

    def get_history(self, session_id: str) -> List[ConversationTurn]:
        raw = self._get_json_with_retry(self._key(session_id), default=[])
        if not isinstance(raw, list):
            return []
        turns = [ConversationTurn.from_dict(t) for t in raw if isinstance(t, dict)]
        log.debug(f"HISTORY_LOADED | session={session_id} | turns={len(turns)}")
        return turns

    def append_turns(self, session_id: str, turns: List[ConversationTurn]) -> bool:
        history = self.get_history(session_id)
        history.extend(turns)
        trim_history(history, self.max_turns)
        ok = self._set_json_with_retry(self._key(session_id), [t.to_dict() for t in history], ttl=self.ttl)
        if ok:
            log.info(f"HISTORY_SAVED | session={session_id} | turns={len(history)}")
        else:
            log.error(f"HISTORY_SAVE_FAILED | session={session_id}")
        return ok

    def delete_session(self, session_id: str) -> bool:
        try:
            deleted = self.redis.delete(self._key(session_id))
            log.info(f"SESSION_DELETE_COMPLETE | session={session_id} | deleted_keys={deleted}")
            return bool(deleted)
        except RedisError as e:
            log.error(f"SESSION_DELETE_ERROR | session={session_id} | error={e}", exc_info=True)
            return False

    def health_check(self) -> Dict[str, Any]:
        """Ping plus a set/get/delete round trip."""
        health_data: Dict[str, Any] = {
            "connection_healthy": False,
            "ping_success": False,
            "memory_info": {},
            "error": None,
        }

        try:
            health_data["ping_success"] = bool(self.redis.ping())

            test_key = f"health_check:{int(time.time())}"
            self.redis.setex(test_key, 10, "test")
            test_value = self.redis.get(test_key)
            self.redis.delete(test_key)
            health_data["connection_healthy"] = test_value in ("test", b"test")

            info = self.redis.info("memory")
            health_data["memory_info"] = {
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "maxmemory_human": info.get("maxmemory_human", "unknown"),
            }
        except Exception as e:  # noqa: BLE001
            health_data["error"] = str(e)

        return health_data

    # ────────────────────────────────────────────────────────
    # Internal helpers with retry logic
    # ────────────────────────────────────────────────────────

    def _get_json_with_retry(self, key: str, *, default: Any = None, max_retries: int = 3) -> Any:
        for attempt in range(max_retries):
            try:
                raw = self.redis.get(key)
                if raw is None:
                    return default
                try:
                    return json.loads(raw)
                except json.JSONDecodeError as je:
                    log.warning(f"REDIS_GET_JSON_ERROR | key={key} | error={je}")
                    # Reset corrupted key
                    self.redis.delete(key)
                    return default

            except (ConnectionError, TimeoutError) as ce:
                log.warning(f"REDIS_GET_CONNECTION_ERROR | key={key} | attempt={attempt + 1} | error={ce}")
                if attempt == max_retries - 1:
                    return default
                time.sleep(0.1 * (attempt + 1))

            except RedisError as re:
                log.error(f"REDIS_GET_ERROR | key={key} | error={re}")
                return default

        return default

    def _set_json_with_retry(self, key: str, value: Any, *, ttl: timedelta | None, max_retries: int = 3) -> bool:
        payload = json.dumps(value)
        for attempt in range(max_retries):
            try:
                if ttl is None:
                    result = self.redis.set(key, payload)
                else:
                    result = self.redis.setex(key, int(ttl.total_seconds()), payload)
                if result:
                    return True
                log.warning(f"REDIS_SET_FAILED | key={key} | attempt={attempt + 1}")

            except (ConnectionError, TimeoutError) as ce:
                log.warning(f"REDIS_SET_CONNECTION_ERROR | key={key} | attempt={attempt + 1} | error={ce}")
                if attempt == max_retries - 1:
                    return False
                time.sleep(0.1 * (attempt + 1))

            except RedisError as e:
                log.error(f"REDIS_SET_ERROR | key={key} | error={e}")
                return False

        return False
