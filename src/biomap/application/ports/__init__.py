"""Application ports (interfaces) used by the application layer."""

from .kv_store_port import KeyValueStore

__all__ = ["KeyValueStore"]
