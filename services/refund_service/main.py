from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.errors import register_error_handlers
from shared.observability import setup_observability
from shared.security import limiter
from .router import router, public_router

refund_app = FastAPI(title="Refund Service", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(refund_app, "refund_service")

# --- SECURITY SETUP ---
refund_app.state.limiter = limiter
refund_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_error_handlers(refund_app)

refund_app.include_router(public_router)
refund_app.include_router(router)
