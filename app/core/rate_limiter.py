import jwt
from slowapi import Limiter
from slowapi.util import get_remote_address
from loguru import logger

from app.core.config import settings
from app.core.security import decode_token

# ----------------------------------------------------------------
# 1. CLIENT IDENTIFICATION
# ----------------------------------------------------------------
def get_real_ip(request):
    """
    Checks X-Forwarded-For (Vercel/Nginx) and X-Real-IP (Cloudflare)
    before falling back to the socket address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # leftmost entry is the client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def rate_limit_key(request):
    """
    Signed-in callers are limited per account, so a whole office behind
    one NAT polling for approval does not share a bucket. Anything else
    falls back to the client IP.
    """
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{decode_token(token)['sub']}"
        except jwt.InvalidTokenError:
            pass
    return f"ip:{get_real_ip(request)}"

# ----------------------------------------------------------------
# 2. REDIS CONNECTION STRING HANDLING (SSL/TLS Support)
# ----------------------------------------------------------------
# Managed Redis (Upstash etc.) expects 'rediss://' in production
storage_uri = settings.REDIS_URL

if storage_uri and storage_uri.startswith("redis://") and settings.ENV == "prod":
    storage_uri = storage_uri.replace("redis://", "rediss://", 1)

# ----------------------------------------------------------------
# 3. INITIALIZE LIMITER WITH FAIL-OVER LOGIC
# ----------------------------------------------------------------
try:
    if storage_uri:
        logger.info("Initializing rate limiter with Redis storage")
        limiter = Limiter(
            key_func=rate_limit_key,
            storage_uri=storage_uri,
            strategy="fixed-window",
            storage_options={"socket_connect_timeout": 5, "retry_on_timeout": True}
        )
    else:
        logger.warning("REDIS_URL not set. Using in-memory rate limiting.")
        limiter = Limiter(key_func=rate_limit_key)

except Exception as e:
    logger.error(f"Failed to connect to Redis for rate limiting: {e}")
    # keep the API alive on memory storage
    limiter = Limiter(key_func=rate_limit_key)
