"""SlowAPI rate limiter singleton.

The setup endpoints are public, so limits are keyed on the client address.

Usage in route handlers:
    from reposignal.core.limiter import limiter

    @router.get("/some-endpoint")
    @limiter.limit(settings.setup_rate_limit)
    async def handler(request: Request, ...):
        ...

The `Request` parameter is required by SlowAPI even if the handler doesn't
use it directly; it uses it to extract the key.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=[])
