# yubiverify/domain/signature.py
from __future__ import annotations

import base64
import hashlib
import hmac


def canonicalize(parameters: str) -> str:
    """
    Sort the `name=value` tokens of a query string as whole strings.

    Both sides of the protocol sort the full token, not only the key, so
    the order must be reproduced exactly for signatures to agree.
    """
    return "&".join(sorted(parameters.split("&")))


def sign(parameters: str, secret: bytes) -> str:
    """Base64 HMAC-SHA1 of the canonical form of `parameters`."""
    digest = hmac.new(
        secret, canonicalize(parameters).encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def verify(parameters: str, secret: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(
        sign(parameters, secret).encode("ascii"), signature.encode("utf-8")
    )
