class PaymentGatewayError(Exception):
    """Gateway answered, but not with a usable payment."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
