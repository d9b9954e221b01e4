"""
Valkey (Redis-compatible) client for short-lived login state.

Simple wrapper around redis-py. Connection URL from Vault.
Fail-fast: raises on connection failure, never returns fallback values.
"""

import json
import logging

import redis

logger = logging.getLogger(__name__)


class ValkeyClient:
    """
    Redis-compatible client for Valkey.

    Usage:
        client = ValkeyClient("redis://localhost:6379/0")
        client.set_json("login_attempt:abc", {...}, expire_seconds=600)
        value = client.getdel_json("login_attempt:abc")  # None if missing
    """

    def __init__(self, url: str):
        """
        Initialize Valkey connection.

        Args:
            url: Redis-compatible connection URL (e.g., redis://localhost:6379/0)

        Raises:
            redis.ConnectionError: If connection fails
        """
        self._client = redis.from_url(url, decode_responses=True)
        # Verify connectivity immediately (fail-fast)
        self._client.ping()
        logger.info("ValkeyClient connected")

    def ping(self) -> bool:
        """
        Health check.

        Returns True if Valkey responds.
        Raises redis.ConnectionError if unreachable.
        """
        self._client.ping()
        return True

    def delete(self, key: str) -> bool:
        """
        Delete key.

        Returns True if key existed and was deleted, False if key didn't exist.
        """
        return self._client.delete(key) > 0

    def set_json(self, key: str, value: dict, expire_seconds: int | None = None) -> None:
        """
        Set key to JSON-serialized value, optionally with expiration.

        Args:
            key: Key to set
            value: Dict to serialize
            expire_seconds: TTL in seconds (None for no expiration)
        """
        json_str = json.dumps(value)
        if expire_seconds is not None:
            self._client.setex(key, expire_seconds, json_str)
        else:
            self._client.set(key, json_str)

    def getdel_json(self, key: str) -> dict | None:
        """
        Atomically read and delete a JSON value (GETDEL).

        Returns None if key doesn't exist. Two concurrent callers can never
        both receive the value.
        Raises ValueError if value is not valid JSON.
        """
        value = self._client.getdel(key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in key '{key}': {e}")

    def close(self) -> None:
        """Close the connection."""
        self._client.close()
        logger.info("ValkeyClient closed")
