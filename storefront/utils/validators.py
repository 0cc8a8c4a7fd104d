from typing import Any


def coerce_int(v: Any, default: int) -> int:
    """Lenient integer parse: anything unreadable (or negative) falls back to ``default``."""
    if v is None or isinstance(v, bool):
        return default
    try:
        n = int(str(v).strip())
    except (TypeError, ValueError):
        return default
    if n < 0:
        return default
    return n


def is_true(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    return str(v) == "true"
