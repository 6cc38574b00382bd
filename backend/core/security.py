"""
GroupBuy Security Utilities

LINE webhook signature verification.
"""

import base64
import hashlib
import hmac


def compute_signature(body: bytes, channel_secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw request body, as LINE signs it."""
    digest = hmac.new(channel_secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_signature(body: bytes, channel_secret: str, signature: str) -> bool:
    """Return True iff `signature` matches the body signed with the channel secret."""
    if not channel_secret or not signature:
        return False
    expected = compute_signature(body, channel_secret)
    return hmac.compare_digest(signature, expected)
