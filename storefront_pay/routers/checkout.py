import secrets
import string
import time
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel
from typing import List, Optional
from ..cart import CartItem, cart_total
from ..db import SqliteOrderStore
from ..dependencies import get_gateway, get_order_store
from ..observability.logging import get_logger
from ..providers.base import PaymentGateway
from ..providers.sepay.schemas import PaymentRequest

router = APIRouter()
logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class CheckoutRequest(BaseModel):
    name: str
    email: str
    phone: str
    address: Optional[str] = None
    notes: Optional[str] = None
    cart: List[CartItem]


def generate_order_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


@router.post("/checkout")
async def checkout(
    body: CheckoutRequest,
    store: SqliteOrderStore = Depends(get_order_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Records a pending order and opens a payment for it.
    303 to the gateway payment page when one is returned, otherwise the payment
    details (QR / bank transfer) as JSON. Gateway failures come back as 502.
    """
    if not body.cart:
        raise HTTPException(status_code=400, detail="Cart is empty")
    if not (body.name.strip() and body.email.strip() and body.phone.strip()):
        raise HTTPException(status_code=400, detail="name, email and phone are required")

    order_id = generate_order_id()
    total = cart_total(body.cart)

    await store.create_order(
        order_id=order_id,
        customer_name=body.name,
        customer_email=body.email,
        customer_phone=body.phone,
        address=body.address,
        amount=total,
    )

    payment = await gateway.create_payment(PaymentRequest(
        order_id=order_id,
        amount=total,
        customer_name=body.name,
        customer_email=body.email,
        customer_phone=body.phone,
        description=f"Order {order_id}",
    ))

    if not payment.success:
        logger.error("checkout_payment_failed", order_id=order_id, error=payment.error)
        return JSONResponse(
            status_code=502,
            content={"error": payment.error or "Could not create payment", "order_id": order_id},
        )

    if payment.transaction_id:
        await store.patch_order(order_id, {"transaction_id": payment.transaction_id})

    logger.info("checkout_completed", order_id=order_id, amount=total, transaction_id=payment.transaction_id)

    if payment.payment_url:
        return RedirectResponse(payment.payment_url, status_code=303)

    return {
        "success": True,
        "order_id": order_id,
        "payment": payment.model_dump(exclude_none=True),
    }


@router.get("/orders/{order_id}")
async def get_order(order_id: str, store: SqliteOrderStore = Depends(get_order_store)):
    order = await store.find_order_by_order_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order
