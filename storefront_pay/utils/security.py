import hmac, hashlib, json
from enum import Enum
from typing import Any, Dict, Optional


class SignatureCheck(str, Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    SKIPPED = "skipped"  # no secret configured


def hmac_sha256_hex(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, provided_signature: str, secret: str) -> bool:
    """
    HMAC-SHA256 (hex) over the raw, unparsed body, compared in constant time.
    Any failure (bad types, undecodable signature) is reported as a mismatch.
    """
    try:
        expected = hmac_sha256_hex(secret, raw_body).encode("ascii")
        provided = provided_signature.encode("utf-8")
        return hmac.compare_digest(expected, provided)
    except (AttributeError, TypeError, ValueError):
        return False


def check_webhook_signature(raw_body: bytes, provided_signature: Optional[str], secret: Optional[str]) -> SignatureCheck:
    if not secret:
        return SignatureCheck.SKIPPED
    if verify_signature(raw_body, provided_signature or "", secret):
        return SignatureCheck.VERIFIED
    return SignatureCheck.INVALID


def canonical_signature_string(payload: Dict[str, Any]) -> str:
    # key=<json value> pairs, top-level keys sorted; placeholder until the gateway documents its scheme
    return "&".join(
        f"{key}={json.dumps(payload[key], ensure_ascii=False, sort_keys=True, separators=(',', ':'))}"
        for key in sorted(payload)
    )


def sign_payload(payload: Dict[str, Any], secret: str) -> str:
    return hmac_sha256_hex(secret, canonical_signature_string(payload).encode("utf-8"))
