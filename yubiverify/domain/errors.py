from __future__ import annotations

from enum import Enum
from typing import Mapping, Sequence


class ErrorKind(str, Enum):
    SIGNATURE_MISMATCH = "signature_mismatch"
    INVALID_CLIENT = "invalid_client"
    STATUS_CODE = "status_code"
    INVALID_CERTIFICATE = "invalid_certificate"
    CONNECTION_TIMEOUT = "connection_timeout"
    TIME_WINDOW_REACHED = "time_window_reached"
    PROTOCOL = "protocol"
    CONFIGURATION = "configuration"


class VerificationError(Exception):
    """Base class for every way a verification can end without success."""

    kind: ErrorKind


class SignatureVerificationError(VerificationError):
    """The response signature does not match the one computed locally."""

    kind = ErrorKind.SIGNATURE_MISMATCH

    def __init__(self, expected: str, actual: str | None) -> None:
        super().__init__(
            f"Signature verification failed - expected = {expected}, got = {actual}"
        )
        self.expected = expected
        self.actual = actual


class InvalidClientError(VerificationError):
    """The validation server does not know this client id."""

    kind = ErrorKind.INVALID_CLIENT

    def __init__(self, client_id: str) -> None:
        super().__init__(f"Invalid client id: {client_id}")
        self.client_id = client_id


class StatusCodeError(VerificationError):
    """The server answered with a definitive negative status."""

    kind = ErrorKind.STATUS_CODE

    def __init__(self, status_code: str) -> None:
        super().__init__(f"Error: {status_code}")
        self.status_code = status_code


class InvalidCertificateError(VerificationError):
    """TLS peer verification failed for one of the validation hosts."""

    kind = ErrorKind.INVALID_CERTIFICATE

    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"Invalid SSL certificate for {host}: {reason}")
        self.host = host
        self.reason = reason


class ConnectionTimeoutError(VerificationError):
    """No host produced an authoritative answer within the timeout."""

    kind = ErrorKind.CONNECTION_TIMEOUT

    def __init__(
        self, timeout: float, failures: Mapping[str, str] | None = None
    ) -> None:
        super().__init__(f"Connection timed out after {timeout:g} seconds")
        self.timeout = timeout
        self.failures = dict(failures or {})


class TimeWindowReachedError(VerificationError):
    """The OTPs of a chain were generated too far apart."""

    kind = ErrorKind.TIME_WINDOW_REACHED

    def __init__(self, elapsed: int, max_time_window: int) -> None:
        super().__init__(
            f"Time window reached: {elapsed} elapsed, {max_time_window} allowed"
        )
        self.elapsed = elapsed
        self.max_time_window = max_time_window


class ProtocolError(VerificationError):
    """Malformed or inconsistent response from a validation server."""

    kind = ErrorKind.PROTOCOL


class OTPMismatchError(ProtocolError):
    """The OTP echoed by the server is not the one that was sent."""

    def __init__(self, expected_otp: str, actual_otp: str | None) -> None:
        super().__init__("OTP in the response does not match the provided OTP")
        self.expected_otp = expected_otp
        self.actual_otp = actual_otp


class ConfigurationError(VerificationError):
    """The request could not be built from the given input."""

    kind = ErrorKind.CONFIGURATION


class InvalidParameterError(ConfigurationError):
    """A request parameter is outside its allowed range."""


class DeviceMismatchError(ConfigurationError):
    """OTPs of one chain come from different devices."""

    def __init__(self, device_ids: Sequence[str]) -> None:
        super().__init__("OTPs contain different device IDs")
        self.device_ids = list(device_ids)
