from typing import Protocol
from .sepay.schemas import PaymentRequest, PaymentResponse, PaymentStatusResult

class PaymentGateway(Protocol):
    name: str

    # Must not raise: failures come back as PaymentResponse(success=False)
    async def create_payment(self, req: PaymentRequest) -> PaymentResponse:
        ...

    async def get_payment_status(self, transaction_id: str) -> PaymentStatusResult:
        ...
