"""Whole-document persistence addressed by key."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Last-writer-wins store of JSON documents.

    ``get`` returns None for a missing key, ``delete`` of a missing key is a
    no-op and ``get_all`` preserves insertion order.
    """

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...

    def get_all(self) -> Dict[str, Dict[str, Any]]: ...
