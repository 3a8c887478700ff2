"""
Rate Limiting Middleware
Protección contra ataques de fuerza bruta en login y registro
"""
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from config import RATE_LIMIT_DEFAULT, RATE_LIMIT_ENABLED, RATE_LIMIT_LOGIN, REDIS_URL

LOGIN_LIMIT = RATE_LIMIT_LOGIN

# Configurar limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri=REDIS_URL,
    strategy="fixed-window",
    enabled=RATE_LIMIT_ENABLED,
)


def setup_rate_limiting(app):
    """Configurar rate limiting en la aplicación FastAPI"""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    return limiter
