from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import DEFAULT_RATE_LIMIT, RATE_LIMIT_ENABLED

# Counters live in the `limits` in-memory storage, which expires idle
# windows on its own, so one bucket per client does not grow unbounded.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[DEFAULT_RATE_LIMIT],
    storage_uri="memory://",
    enabled=RATE_LIMIT_ENABLED,
)
