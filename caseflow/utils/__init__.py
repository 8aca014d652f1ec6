"""Shared utility helpers used across services and routers."""

INT32_MIN = -2147483648
INT32_MAX = 2147483647


def safe_int(v):
    """Safely convert a value to int, returning None on failure."""
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (ValueError, TypeError):
        return None


def safe_int32(v):
    """Integer within PostgreSQL INTEGER range, else None. Rejects floats like 1.5."""
    if isinstance(v, float) and not v.is_integer():
        return None
    if isinstance(v, str) and "." in v:
        return None
    n = safe_int(v)
    if n is None or n < INT32_MIN or n > INT32_MAX:
        return None
    return n
