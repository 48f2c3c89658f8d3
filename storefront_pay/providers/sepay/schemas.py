from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
from typing import Any, Optional

# Field names follow the Sepay wire format (snake_case JSON).


def _epoch_to_iso(value: Any) -> Any:
    # Sepay may send paid_at as unix seconds
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
    return value


class PaymentRequest(BaseModel):
    order_id: str
    amount: int = Field(ge=0, description="VND, no minor units")
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    description: Optional[str] = None
    return_url: Optional[str] = None
    model_config = {"frozen": True}


class BankAccount(BaseModel):
    bank_name: str
    account_number: str
    account_name: str
    model_config = {"coerce_numbers_to_str": True}


class PaymentResponse(BaseModel):
    success: bool
    payment_url: Optional[str] = None
    qr_code: Optional[str] = None
    bank_account: Optional[BankAccount] = None
    transaction_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "PaymentResponse":
        return cls(success=False, error=error)


class WebhookEvent(BaseModel):
    # untrusted until the raw body it came from has been verified
    order_id: str
    transaction_id: Optional[str] = None
    status: str
    amount: Optional[float] = None
    paid_at: Optional[str] = None
    reason: Optional[str] = None
    model_config = {"extra": "ignore", "coerce_numbers_to_str": True}

    @field_validator("paid_at", mode="before")
    @classmethod
    def paid_at_from_epoch(cls, value: Any) -> Any:
        return _epoch_to_iso(value)


class PaymentStatusResult(BaseModel):
    status: str = "pending"  # pending | success | failed | expired
    amount: Optional[float] = None
    paid_at: Optional[str] = None

    @field_validator("paid_at", mode="before")
    @classmethod
    def paid_at_from_epoch(cls, value: Any) -> Any:
        return _epoch_to_iso(value)
