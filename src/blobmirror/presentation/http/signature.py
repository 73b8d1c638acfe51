"""GitHub webhook signature verification."""

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``X-Hub-Signature-256`` value for ``body``."""
    mac = hmac.new(secret.encode(), msg=body, digestmod=hashlib.sha256)
    return SIGNATURE_PREFIX + mac.hexdigest()


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Verify a webhook body against its ``X-Hub-Signature-256`` header.

    Returns False on any validation failure.
    """
    if not signature or not secret:
        return False
    expected = compute_signature(secret, body)
    return hmac.compare_digest(expected, signature.strip())
