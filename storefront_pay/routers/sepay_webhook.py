from fastapi import APIRouter, Depends, Request, Header
from fastapi.responses import JSONResponse
from ..settings import settings
from ..observability.logging import get_logger
from ..dependencies import get_reconciler
from ..providers.sepay.adapter import WEBHOOK_PATH
from ..providers.sepay.schemas import WebhookEvent
from ..reconciliation.status_mapper import WebhookReconciler
from ..utils.security import SignatureCheck, check_webhook_signature

router = APIRouter()
logger = get_logger(__name__)


@router.post(WEBHOOK_PATH)
async def sepay_webhook(
    request: Request,
    x_sepay_signature: str | None = Header(default=None),
    reconciler: WebhookReconciler = Depends(get_reconciler),
):
    """
    Sepay payment status callback.
    Always 200 {"received": true} so Sepay does not retry; 401 only for an untrusted body.
    """
    raw_body = await request.body()

    check = check_webhook_signature(raw_body, x_sepay_signature, settings.SEPAY_SECRET_KEY)
    if check is SignatureCheck.SKIPPED:
        logger.warning(
            "sepay_webhook_signature_skipped",
            reason="SEPAY_SECRET_KEY not configured",
            allowed=settings.SEPAY_ALLOW_UNSIGNED_WEBHOOKS,
        )
    if check is SignatureCheck.INVALID or (
        check is SignatureCheck.SKIPPED and not settings.SEPAY_ALLOW_UNSIGNED_WEBHOOKS
    ):
        logger.warning("sepay_webhook_invalid_signature", signature_present=bool(x_sepay_signature))
        return JSONResponse(status_code=401, content={"error": "Invalid signature"})

    try:
        event = WebhookEvent.model_validate_json(raw_body)
        logger.info(
            "sepay_webhook_received",
            order_id=event.order_id,
            status=event.status,
            transaction_id=event.transaction_id,
        )
        outcome = await reconciler.handle(event)
    except Exception:
        logger.exception("sepay_webhook_processing_error")
        return {"received": True, "error": "Processing error"}

    logger.info("sepay_webhook_handled", order_id=outcome.order_id, action=outcome.action.value)
    return {"received": True}


@router.get(WEBHOOK_PATH)
async def sepay_webhook_status():
    return {
        "message": "Sepay webhook endpoint",
        "status": "active",
        "url": WEBHOOK_PATH,
    }


@router.api_route(WEBHOOK_PATH, methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
async def sepay_webhook_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})
