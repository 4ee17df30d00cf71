from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from shared.config.settings import settings
from .jwt_handler import verify_access_token


def bearer_subject(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    claims = verify_access_token(token)
    return claims.get("sub") if claims else None


def user_id_or_ip(request: Request) -> str:
    """
    SlowAPI key function.

    Refunds and cancellations are limited per signed-in user; a request
    without a valid token is limited by client address instead.
    """
    subject = bearer_subject(request)
    if subject:
        return f"user:{subject}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip, enabled=settings.RATE_LIMIT_ENABLED)
