from __future__ import annotations

import secrets
from urllib.parse import urlencode

from yubiverify.domain import signature
from yubiverify.domain.entities import ClientCredential, OTP, ValidationRequest
from yubiverify.domain.errors import InvalidParameterError

SYNC_LEVEL_PRESETS = ("fast", "secure")
NONCE_MIN_LENGTH = 16
NONCE_MAX_LENGTH = 40


def generate_nonce() -> str:
    """32 random hex characters, inside the 16-40 range the server accepts."""
    return secrets.token_hex(16)


def _check_sync_level(sync_level: int | str) -> int | str:
    if isinstance(sync_level, str):
        if sync_level in SYNC_LEVEL_PRESETS:
            return sync_level
        if not sync_level.isdigit():
            raise InvalidParameterError(
                'sl parameter value must be between 0 and 100 or string "fast" or "secure"'
            )
        sync_level = int(sync_level)
    if isinstance(sync_level, bool) or not 0 <= sync_level <= 100:
        raise InvalidParameterError(
            'sl parameter value must be between 0 and 100 or string "fast" or "secure"'
        )
    return sync_level


def _format_timeout(timeout: int | float) -> int | float:
    if isinstance(timeout, float) and timeout.is_integer():
        return int(timeout)
    return timeout


def build_request(
    credential: ClientCredential,
    otp: OTP | str,
    nonce: str,
    *,
    timestamp: bool = False,
    sync_level: int | str | None = None,
    timeout: int | float | None = None,
) -> ValidationRequest:
    if not NONCE_MIN_LENGTH <= len(nonce) <= NONCE_MAX_LENGTH:
        raise InvalidParameterError(
            f"nonce must be {NONCE_MIN_LENGTH} to {NONCE_MAX_LENGTH} characters long"
        )

    data: list[tuple[str, object]] = [
        ("id", credential.client_id),
        ("otp", str(otp)),
        ("nonce", nonce),
    ]
    if timestamp:
        data.append(("timestamp", 1))
    if sync_level is not None:
        sync_level = _check_sync_level(sync_level)
        data.append(("sl", sync_level))
    if timeout is not None:
        timeout = _format_timeout(timeout)
        data.append(("timeout", timeout))

    parameters = urlencode(data)
    signed = (
        signature.sign(parameters, credential.secret)
        if credential.secret is not None
        else None
    )
    return ValidationRequest(
        client_id=credential.client_id,
        otp=str(otp),
        nonce=nonce,
        timestamp=timestamp,
        sync_level=sync_level,
        timeout=timeout,
        signature=signed,
        parameters=parameters,
    )


def build_query(
    credential: ClientCredential,
    otp: OTP | str,
    nonce: str,
    *,
    timestamp: bool = False,
    sync_level: int | str | None = None,
    timeout: int | float | None = None,
) -> str:
    return build_request(
        credential,
        otp,
        nonce,
        timestamp=timestamp,
        sync_level=sync_level,
        timeout=timeout,
    ).query_string
