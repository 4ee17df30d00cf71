from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt

from shared.config.settings import settings

SECRET_KEY = settings.JWT_SECRET_KEY
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")


def create_access_token(user_id: str, email: str, role: str, expires_delta: timedelta | None = None) -> str:
    """Signs a bearer token carrying the caller's id (`sub`), email and role."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": role,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(claims, SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict | None:
    """Returns the claims of a valid token, None if it is forged, malformed or expired."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
