import hmac
from fastapi import APIRouter, Depends, HTTPException, status, Request
from ..settings import settings
from ..db import SqliteOrderStore
from ..dependencies import get_gateway, get_order_store, get_reconciler
from ..observability.logging import get_logger
from ..providers.base import PaymentGateway
from ..providers.sepay.schemas import WebhookEvent
from ..reconciliation.status_mapper import WebhookReconciler

router = APIRouter()
logger = get_logger(__name__)

ADMIN_SECRET_HEADER = "X-Admin-Secret"


def require_admin(request: Request):
    secret = request.headers.get(ADMIN_SECRET_HEADER) or ""
    expected = settings.ADMIN_SECRET or ""
    if not expected or not hmac.compare_digest(secret.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


@router.post("/admin/orders/{order_id}/reconcile", dependencies=[Depends(require_admin)])
async def admin_reconcile_order(
    order_id: str,
    store: SqliteOrderStore = Depends(get_order_store),
    gateway: PaymentGateway = Depends(get_gateway),
    reconciler: WebhookReconciler = Depends(get_reconciler),
):
    """Pull the payment status from Sepay and apply it as if it had arrived by webhook."""
    order = await store.find_order_by_order_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    transaction_id = order.get("transaction_id")
    if not transaction_id:
        raise HTTPException(status_code=409, detail="Order has no transaction id")

    result = await gateway.get_payment_status(transaction_id)
    outcome = await reconciler.handle(WebhookEvent(
        order_id=order_id,
        transaction_id=transaction_id,
        status=result.status,
        amount=result.amount,
        paid_at=result.paid_at,
    ))
    logger.info("admin_reconcile", order_id=order_id, gateway_status=result.status, action=outcome.action.value)

    return {
        "result": "ok",
        "order_id": order_id,
        "gateway_status": result.status,
        "action": outcome.action.value,
    }
