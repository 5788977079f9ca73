"""
Persistence package for the whitelist.

Backends store only the set of whitelisted authorization keys and expose
atomic ``set_if_absent`` / ``delete_if_present`` primitives that the store
builds its non-idempotent add and remove on.

- memory: lock-guarded in-process set (default, single replica).
- redis_backend: shared Redis keyspace for multi-replica deployments.
"""

from .memory import InMemoryWhitelistBackend
from .redis_backend import RedisWhitelistBackend

__all__ = ["InMemoryWhitelistBackend", "RedisWhitelistBackend"]
