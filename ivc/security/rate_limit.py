from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

# Per-client-IP limits; individual routes declare their own via @limiter.limit()
limiter = Limiter(key_func=get_remote_address, default_limits=["300/minute"])
