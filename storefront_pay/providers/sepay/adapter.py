from typing import Dict, Any, Optional
from urllib.parse import quote
import json
import httpx
from pydantic import ValidationError
from ...settings import settings
from ...exceptions import PaymentGatewayError
from ...observability.logging import get_logger
from ...utils.http import client, retry_policy
from ...utils.security import sign_payload
from .schemas import BankAccount, PaymentRequest, PaymentResponse, PaymentStatusResult

logger = get_logger(__name__)

CREATE_PAYMENT_PATH = "/api/v1/payment"
WEBHOOK_PATH = "/api/sepay/webhook"
MOCK_TRANSACTION_PREFIX = "MOCK-"


class SepayAdapter:
    """
    Sepay (VN bank transfer / VietQR):
    - POST /api/v1/payment                   create payment, signed with X-Signature
    - GET  /api/v1/payment/{transaction_id}  payment status
    Without API key + secret key every payment is mocked locally (development only).
    """

    name = "Sepay"

    def __init__(
        self,
        api_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        sandbox: Optional[bool] = None,
        public_store_domain: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        retry_max: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SEPAY_API_KEY
        self.secret_key = secret_key if secret_key is not None else settings.SEPAY_SECRET_KEY
        self.sandbox = settings.SEPAY_SANDBOX if sandbox is None else sandbox
        base = settings.SEPAY_SANDBOX_BASE_URL if self.sandbox else settings.SEPAY_BASE_URL
        self.base_url = base.rstrip("/")
        self.public_store_domain = (public_store_domain or settings.PUBLIC_STORE_DOMAIN).rstrip("/")
        self.timeout_sec = timeout_sec or settings.SEPAY_TIMEOUT_SEC
        self.retry_max = retry_max or settings.SEPAY_RETRY_MAX
        # retry budget is read per instance so settings changes after import apply
        self._post = retry_policy(max_attempts=self.retry_max)(self._post_once)
        self._get = retry_policy(max_attempts=self.retry_max)(self._get_once)

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.secret_key)

    async def _post_once(self, path: str, body: bytes, headers: Dict[str, str]) -> httpx.Response:
        async with client(timeout_sec=self.timeout_sec) as c:
            return await c.post(f"{self.base_url}{path}", content=body, headers=headers)

    async def _get_once(self, path: str) -> httpx.Response:
        async with client(timeout_sec=self.timeout_sec) as c:
            return await c.get(f"{self.base_url}{path}", headers={"X-Api-Key": self.api_key or ""})

    # ---- Utils ----
    def _mock_payment(self, req: PaymentRequest) -> PaymentResponse:
        return PaymentResponse(
            success=True,
            payment_url=f"/orders/{req.order_id}?mock=true",
            qr_code="https://via.placeholder.com/300x300?text=QR+Code",
            bank_account=BankAccount(
                bank_name="Vietcombank",
                account_number="1234567890",
                account_name="CONG TY DEMO",
            ),
            transaction_id=f"{MOCK_TRANSACTION_PREFIX}{req.order_id}",
        )

    def build_payload(self, req: PaymentRequest) -> Dict[str, Any]:
        customer = {"name": req.customer_name, "email": req.customer_email}
        if req.customer_phone:
            customer["phone"] = req.customer_phone
        return {
            "order_id": req.order_id,
            "amount": req.amount,
            "customer": customer,
            "description": req.description or f"Order #{req.order_id}",
            "return_url": req.return_url or f"{self.public_store_domain}/orders/{req.order_id}",
            "webhook_url": f"{self.public_store_domain}{WEBHOOK_PATH}",
        }

    def _parse_payment(self, resp: httpx.Response) -> PaymentResponse:
        try:
            js = resp.json()
        except ValueError:
            js = None

        if not resp.is_success:
            message = js.get("message") if isinstance(js, dict) else None
            raise PaymentGatewayError(
                message or f"Failed to create payment (HTTP {resp.status_code})", resp.status_code
            )
        if not isinstance(js, dict):
            raise PaymentGatewayError("Malformed gateway response", resp.status_code)

        transaction_id = js.get("transaction_id")
        try:
            return PaymentResponse(
                success=True,
                payment_url=js.get("payment_url"),
                qr_code=js.get("qr_code"),
                bank_account=js.get("bank_account"),
                transaction_id=str(transaction_id) if transaction_id is not None else None,
            )
        except ValidationError as e:
            raise PaymentGatewayError("Malformed gateway response", resp.status_code) from e

    # ---- Gateway API ----
    async def create_payment(self, req: PaymentRequest) -> PaymentResponse:
        if not self.configured:
            logger.error(
                "sepay_credentials_missing",
                order_id=req.order_id,
                hint="set SEPAY_API_KEY and SEPAY_SECRET_KEY; returning mock payment",
            )
            return self._mock_payment(req)

        payload = self.build_payload(req)
        headers = {
            "Content-Type": "application/json",
            "X-Api-Key": self.api_key,
            "X-Signature": sign_payload(payload, self.secret_key),
        }
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")

        try:
            resp = await self._post(CREATE_PAYMENT_PATH, body=body, headers=headers)
        except Exception as e:
            logger.error("sepay_payment_unreachable", order_id=req.order_id, error=str(e))
            return PaymentResponse.failure(f"Gateway unreachable: {e}")

        try:
            payment = self._parse_payment(resp)
        except PaymentGatewayError as e:
            logger.error(
                "sepay_payment_failed", order_id=req.order_id, status_code=e.status_code, error=str(e)
            )
            return PaymentResponse.failure(str(e))

        logger.info("sepay_payment_created", order_id=req.order_id, transaction_id=payment.transaction_id)
        return payment

    async def get_payment_status(self, transaction_id: str) -> PaymentStatusResult:
        if not self.api_key:
            return PaymentStatusResult()

        try:
            resp = await self._get(f"{CREATE_PAYMENT_PATH}/{quote(transaction_id, safe='')}")
            resp.raise_for_status()
            js = resp.json()
            return PaymentStatusResult(
                status=str(js.get("status") or "pending"),
                amount=js.get("amount"),
                paid_at=js.get("paid_at"),
            )
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("sepay_status_query_failed", transaction_id=transaction_id, error=str(e))
            return PaymentStatusResult()
