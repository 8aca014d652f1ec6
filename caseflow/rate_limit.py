"""Shared rate limiter (slowapi, in-memory storage).

Limits apply per client address. Disabled under TESTING so the suite can
hammer endpoints freely.
"""

import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled and not os.environ.get("TESTING"),
)
