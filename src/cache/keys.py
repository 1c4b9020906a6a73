"""Deterministic result cache keys."""

import json
from enum import Enum
from typing import Any, Optional

from src.state.models import Intent, SearchRequest

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
KEY_PREFIX = "k:"


def _scalar(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float) and value.is_integer():
        # 4000.0 and 4000 must hash the same
        value = int(value)
    return json.dumps(value, ensure_ascii=False)


def stable_stringify(value: Any) -> str:
    """JSON with object keys sorted at every nesting level and no whitespace."""
    if isinstance(value, dict):
        parts = [
            f"{json.dumps(str(k), ensure_ascii=False)}:{stable_stringify(value[k])}"
            for k in sorted(value, key=str)
        ]
        return "{" + ",".join(parts) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(stable_stringify(v) for v in value) + "]"
    return _scalar(value)


def fnv1a_32(data: bytes) -> int:
    """32-bit FNV-1a hash."""
    h = FNV_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def key_from_object(obj: dict) -> str:
    """``k:<hex>`` hash of the stable serialization of ``obj``."""
    return KEY_PREFIX + format(fnv1a_32(stable_stringify(obj).encode("utf-8")), "x")


def cache_key_object(intent: Intent, request: Optional[SearchRequest] = None) -> dict:
    """Canonical key fields; intent values win over raw request values."""

    def pick(intent_value, request_value):
        return intent_value if intent_value is not None else request_value

    return {
        "q": intent.search_query or (request.q if request else None),
        "budget": pick(intent.budget_lei, request.budget if request else None),
        "sizeMin": pick(intent.size_min, request.size_min if request else None),
        "sizeMax": pick(intent.size_max, request.size_max if request else None),
        "category": intent.category.value,
        "condition_ok": [c.value for c in intent.condition_ok],
    }


def make_cache_key(intent: Intent, request: Optional[SearchRequest] = None) -> str:
    """Cache key for a search with the given normalized intent."""
    return key_from_object(cache_key_object(intent, request))
