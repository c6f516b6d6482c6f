# storefront/utils/security.py
import hashlib
import hmac
from typing import Any

SENSITIVE_KEYS = {"card_number", "cvv", "password", "secret", "token"}


def compute_signature(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of the raw request body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not signature:
        return False
    expected = compute_signature(body, secret)
    # constant time
    return hmac.compare_digest(expected, signature.strip().lower())


def redact(data: Any) -> Any:
    """Copy of a webhook payload with sensitive values replaced, safe to log."""
    if isinstance(data, dict):
        return {
            key: "[FILTERED]" if str(key).lower() in SENSITIVE_KEYS else redact(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact(value) for value in data]
    return data
