"""Sorted sub store definitions and their validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

_KEY_TYPES = ("text", "long", "double")


@dataclass
class SubStoreKey:
    name: str = ""
    type: str = ""

    def is_valid(self) -> bool:
        return bool(self.name) and self.type in _KEY_TYPES


@dataclass
class SubStore:
    name: str = ""
    ttl: int = 0
    sorted_key_count: int = 0
    time_index: int = 0
    keys: list[SubStoreKey] = field(default_factory=list)

    def is_valid(self) -> bool:
        if self.sorted_key_count <= 0 or self.sorted_key_count >= len(self.keys):
            return False
        if self.time_index >= len(self.keys) or self.time_index < self.sorted_key_count:
            return False
        if self.ttl <= 0 or self.ttl > 3650:
            return False
        for index, key in enumerate(self.keys):
            if not key.is_valid():
                return False
            if index == self.time_index and key.type != "long":
                return False
            if index < self.sorted_key_count and key.type == "double":
                return False
        return True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        result["ttl"] = self.ttl
        result["sortedKeyCount"] = self.sorted_key_count
        result["timeIndex"] = self.time_index
        result["keys"] = [{"name": key.name, "type": key.type} for key in self.keys]
        return result


def new_sub_store(name, ttl, sorted_key_count, time_index, keys) -> SubStore:
    """Create a sorted sub store, raising ValueError if it is not valid."""
    store = SubStore(
        name=name,
        ttl=ttl,
        sorted_key_count=sorted_key_count,
        time_index=time_index,
        keys=list(keys),
    )
    if not store.is_valid():
        raise ValueError("invalid sub store definition")
    return store