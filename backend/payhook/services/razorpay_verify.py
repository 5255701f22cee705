import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-razorpay-signature"


def _key(secret: str | bytes) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def sign(raw_body: bytes, secret: str | bytes) -> str:
    """Lowercase hex HMAC-SHA256 of ``raw_body``, as sent in the signature header."""
    return hmac.new(_key(secret), raw_body, hashlib.sha256).hexdigest()


def verify(raw_body: bytes, signature_header: str | None, secret: str | bytes) -> bool:
    """
    Return True if ``signature_header`` is the HMAC of the exact received bytes.

    Missing, empty or non-ASCII headers are a failed verification, not an error.
    """
    if not signature_header:
        logger.info("Webhook signature header missing")
        return False
    try:
        received = signature_header.encode("ascii")
    except UnicodeEncodeError:
        logger.warning("Webhook signature header is not ASCII")
        return False

    expected = sign(raw_body, secret).encode("ascii")
    if not hmac.compare_digest(expected, received):
        logger.warning("Webhook signature mismatch")
        return False
    return True


class SignatureVerifier:
    """Verifier bound to the configured webhook secret."""

    def __init__(self, secret: str | bytes):
        if not secret:
            raise ValueError("Webhook secret must not be empty")
        self._secret = _key(secret)

    def verify(self, raw_body: bytes, signature_header: str | None) -> bool:
        return verify(raw_body, signature_header, self._secret)
