from fastapi import FastAPI

from shared.errors import register_error_handlers
from shared.observability import setup_observability
from .router import router, public_router


payment_app = FastAPI(title="Payment Service", version="2.0.0")

# Structured logs and OTLP traces for the webhook intake
setup_observability(payment_app, "payment_service")
register_error_handlers(payment_app)

payment_app.include_router(router)
payment_app.include_router(public_router)
