from fastapi import FastAPI
from .settings import settings
from .observability.logging import get_logger, setup_logging
from .dependencies import get_order_store
from .routers import sepay_webhook, checkout, admin

setup_logging()
logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME)

app.include_router(checkout.router, tags=["Checkout"])
app.include_router(sepay_webhook.router, tags=["Sepay Webhooks"])
app.include_router(admin.router, tags=["Admin"])


@app.on_event("startup")
async def _startup():
    await get_order_store().init()
    if not (settings.SEPAY_API_KEY and settings.SEPAY_SECRET_KEY):
        logger.error("sepay_credentials_missing", hint="payments will be mocked")

@app.get("/health", tags=["Ops"])
async def health():
    return {"status": "ok"}
