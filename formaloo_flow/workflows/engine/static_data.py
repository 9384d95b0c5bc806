"""
Instance-scoped static data.

Each trigger instance (workflow id + node id) owns a small key-value store
that survives between activations, such as the remote webhook it registered.
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from formaloo_flow.config import settings

logger = logging.getLogger(__name__)


class StaticDataStore(ABC):
    """Key-value store owned by exactly one node instance."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def as_dict(self) -> Dict[str, Any]:
        pass

    def update(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)


class InMemoryStaticData(StaticDataStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)


class RedisStaticData(StaticDataStore):
    """
    Static data kept in one Redis hash per node instance.

    Values are stored JSON-encoded so non-string values round-trip.
    """

    KEY_PREFIX = "formaloo_flow:static"

    def __init__(self, client, workflow_id: str, node_id: str):
        self.client = client
        self.key = f"{self.KEY_PREFIX}:{workflow_id}:{node_id}"

    def get(self, key: str, default: Any = None) -> Any:
        raw = self.client.hget(self.key, key)
        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.client.hset(self.key, key, json.dumps(value, default=str))

    def delete(self, key: str) -> None:
        self.client.hdel(self.key, key)

    def as_dict(self) -> Dict[str, Any]:
        return {k: json.loads(v) for k, v in self.client.hgetall(self.key).items()}


_memory_stores: Dict[str, InMemoryStaticData] = {}
_redis_client = None


def _get_redis_client():
    global _redis_client
    if _redis_client is None:
        import redis

        _redis_client = redis.from_url(
            settings.REDIS_URL, encoding="utf-8", decode_responses=True
        )
    return _redis_client


def get_static_data_store(workflow_id: str, node_id: str) -> StaticDataStore:
    """Return the store for one node instance using the configured backend."""
    if settings.STATIC_DATA_BACKEND == "redis":
        return RedisStaticData(_get_redis_client(), workflow_id, node_id)

    key = f"{workflow_id}:{node_id}"
    if key not in _memory_stores:
        _memory_stores[key] = InMemoryStaticData()
    return _memory_stores[key]
