"""Redis registry store.

Each registry document is a JSON string under ``<prefix><registry id>``.
The raw stored bytes double as the document version: the conditional
replace succeeds only if the key still holds exactly the bytes that were
read. Field updates run as Lua scripts so they are atomic on the server.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

import orjson
import redis

from cronus.config import settings
from cronus.core.model import RegistryDocument, copy_hosts
from cronus.errors import StoreError
from cronus.store.base import RegistryStore

if TYPE_CHECKING:
    from redis import Redis
    from redis.commands.core import Script

logger = logging.getLogger(__name__)

# Compare raw bytes and swap
REPLACE_IF_UNCHANGED_SCRIPT = """
if redis.call("GET", KEYS[1]) == ARGV[1] then
    redis.call("SET", KEYS[1], ARGV[2])
    return 1
end
return 0
"""

SET_SLOT_SCRIPT = """
local raw = redis.call("GET", KEYS[1])
if not raw then
    return 0
end
local doc = cjson.decode(raw)
if type(doc.hosts) ~= "table" then
    doc.hosts = {}
end
local host = doc.hosts[ARGV[1]]
if type(host) ~= "table" then
    host = {}
    doc.hosts[ARGV[1]] = host
end
host[ARGV[2]] = tonumber(ARGV[3])
redis.call("SET", KEYS[1], cjson.encode(doc))
return 1
"""

UNSET_SLOT_SCRIPT = """
local raw = redis.call("GET", KEYS[1])
if not raw then
    return 0
end
local doc = cjson.decode(raw)
local host = type(doc.hosts) == "table" and doc.hosts[ARGV[1]] or nil
if type(host) ~= "table" or host[ARGV[2]] == nil then
    return 0
end
host[ARGV[2]] = nil
redis.call("SET", KEYS[1], cjson.encode(doc))
return 1
"""

_redis_client: Redis | None = None


def get_redis() -> Redis:
    """Get or create the shared Redis client."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(settings.redis_url, decode_responses=False)
    return _redis_client


def close_redis() -> None:
    """Close the shared Redis client."""
    global _redis_client
    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class RedisStore(RegistryStore):
    """Registry store backed by JSON documents in Redis."""

    def __init__(self, client: Redis | None = None, key_prefix: str | None = None):
        self.client = client if client is not None else get_redis()
        self.key_prefix = settings.redis_key_prefix if key_prefix is None else key_prefix

        self._replace_script: Script = self.client.register_script(REPLACE_IF_UNCHANGED_SCRIPT)
        self._set_script: Script = self.client.register_script(SET_SLOT_SCRIPT)
        self._unset_script: Script = self.client.register_script(UNSET_SLOT_SCRIPT)

    def key(self, registry_id: str) -> str:
        """Redis key holding a registry document."""
        return f"{self.key_prefix}{registry_id}"

    @staticmethod
    def _encode(registry_id: str, hosts: Mapping[str, Mapping[str, int]]) -> bytes:
        return orjson.dumps({"id": registry_id, "hosts": copy_hosts(hosts)})

    @staticmethod
    def _decode(registry_id: str, raw: bytes | str) -> RegistryDocument:
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise StoreError(f"registry document {registry_id!r} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"registry document {registry_id!r} is not a JSON object")
        data.setdefault("id", registry_id)
        return RegistryDocument.from_dict(data, version=raw)

    def find(self, registry_id: str) -> RegistryDocument | None:
        raw = self.client.get(self.key(registry_id))
        if raw is None:
            return None
        return self._decode(registry_id, raw)

    def fetch_or_create(self, registry_id: str) -> RegistryDocument:
        key = self.key(registry_id)
        with self.client.pipeline(transaction=True) as pipe:
            pipe.set(key, self._encode(registry_id, {}), nx=True)
            pipe.get(key)
            created, raw = pipe.execute()

        if created:
            logger.debug(f"Created registry document '{registry_id}'")
        if raw is None:
            raise StoreError(f"registry document {registry_id!r} vanished after upsert")
        return self._decode(registry_id, raw)

    def replace_if_unchanged(
        self,
        snapshot: RegistryDocument,
        hosts: Mapping[str, Mapping[str, int]],
    ) -> int:
        result = self._replace_script(
            keys=[self.key(snapshot.id)],
            args=[snapshot.version, self._encode(snapshot.id, hosts)],
        )
        return int(result)

    def set_slot(self, registry_id: str, hostname: str, pid: str, expiry: int) -> None:
        self._set_script(keys=[self.key(registry_id)], args=[hostname, pid, expiry])

    def unset_slot(self, registry_id: str, hostname: str, pid: str) -> None:
        self._unset_script(keys=[self.key(registry_id)], args=[hostname, pid])

    def close(self) -> None:
        if self.client is _redis_client:
            close_redis()
        else:
            self.client.close()
