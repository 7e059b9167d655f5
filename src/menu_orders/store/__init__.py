from .base import IMMUTABLE_FIELDS, OrderMutator, OrderStore, apply_mutator
from .collection import CollectionOrderStore
from .kv import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore
from .sql import SqlOrderStore

__all__ = [
    "OrderMutator",
    "OrderStore",
    "IMMUTABLE_FIELDS",
    "apply_mutator",
    "CollectionOrderStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "RedisKeyValueStore",
    "SqlOrderStore",
]
