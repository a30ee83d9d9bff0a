from __future__ import annotations

from yubiverify.domain import signature as signature_codec
from yubiverify.domain.entities import ResponseStatus, ValidationResponse
from yubiverify.domain.errors import (
    InvalidClientError,
    OTPMismatchError,
    ProtocolError,
    SignatureVerificationError,
    StatusCodeError,
)


def parse_response(raw_body: str) -> ValidationResponse:
    """
    Split a response body into its `h` signature and the ordered parameters.

    Every line other than `h=...` is kept, in order, as the canonical
    parameter string the signature was computed over.
    """
    sig: str | None = None
    lines: list[str] = []
    parameters: dict[str, str] = {}

    for raw_line in raw_body.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ProtocolError(f"Malformed response line: {line!r}")
        if key == "h":
            sig = value
            continue
        lines.append(line)
        parameters[key] = value

    return ValidationResponse(
        parameters=parameters, signature=sig, canonical="&".join(lines)
    )


def classify(
    response: ValidationResponse,
    *,
    otp: str,
    secret: bytes | None,
    client_id: str = "",
    nonce: str | None = None,
) -> ResponseStatus:
    """
    Check a parsed response against the request it answers.

    Returns OK or the transient REPLAYED_REQUEST; every other outcome is
    raised as a VerificationError.
    """
    code = response.status_code
    if code is None:
        raise ProtocolError("Missing status attribute")
    status = response.status

    # servers leave the otp out of some failure answers
    if response.otp is not None or status is ResponseStatus.OK:
        if response.otp != otp:
            raise OTPMismatchError(otp, response.otp)
    if nonce is not None and response.nonce is not None and response.nonce != nonce:
        raise ProtocolError("Nonce in the response does not match the request nonce")

    if secret is not None:
        if not signature_codec.verify(response.canonical, secret, response.signature):
            raise SignatureVerificationError(
                signature_codec.sign(response.canonical, secret), response.signature
            )

    if status is ResponseStatus.OK:
        return status
    if status is ResponseStatus.REPLAYED_REQUEST:
        return status
    if status is ResponseStatus.NO_SUCH_CLIENT:
        raise InvalidClientError(client_id)
    raise StatusCodeError(code.strip().lower())


def validate_response(
    raw_body: str,
    *,
    otp: str,
    secret: bytes | None,
    client_id: str = "",
    nonce: str | None = None,
) -> tuple[ResponseStatus, ValidationResponse]:
    response = parse_response(raw_body)
    status = classify(
        response, otp=otp, secret=secret, client_id=client_id, nonce=nonce
    )
    return status, response
