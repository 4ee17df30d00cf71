from fastapi import FastAPI

from shared.config.database import engine, Base
from shared.observability import setup_observability

# IMPORTANT: import models so they register with Base
from services.order_service import models as order_models
from services.product_service import models as product_models
from services.cart_service import models as cart_models

from services.order_service.main import order_app
from services.refund_service.main import refund_app
from services.payment_service.main import payment_app

app = FastAPI(title="Storefront Orders")

# Root app owns /metrics; sub-apps only add tracing and logging
setup_observability(app, "storefront", expose_metrics=True)

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

@app.get("/health")
async def health():
    return {"status": "ok"}

app.mount("/orders", order_app)
app.mount("/refunds", refund_app)
app.mount("/payments", payment_app)
