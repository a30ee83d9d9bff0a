from __future__ import annotations

import base64
import binascii
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

from yubiverify.domain.errors import ConfigurationError, ProtocolError

DEVICE_ID_LENGTH = 12


@dataclass(frozen=True)
class OTP:
    value: str

    def __post_init__(self):
        value = (self.value or "").strip()
        if len(value) < DEVICE_ID_LENGTH:
            raise ValueError(
                f"otp must be at least {DEVICE_ID_LENGTH} characters long"
            )
        object.__setattr__(self, "value", value)

    @property
    def device_id(self) -> str:
        return self.value[:DEVICE_ID_LENGTH]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClientCredential:
    client_id: str
    secret: bytes | None = field(default=None, repr=False)

    @classmethod
    def from_encoded(cls, client_id: str, key: str | None) -> "ClientCredential":
        """Build a credential from the base64 API key handed out with the id."""
        if not key:
            return cls(client_id=str(client_id))
        try:
            secret = base64.b64decode(key.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as e:
            raise ConfigurationError(f"secret key is not valid base64: {e}") from e
        return cls(client_id=str(client_id), secret=secret)


@dataclass(frozen=True)
class ValidationRequest:
    client_id: str
    otp: str
    nonce: str
    timestamp: bool = False
    sync_level: int | str | None = None
    timeout: int | float | None = None
    signature: str | None = None
    # unsigned query in the order it was signed
    parameters: str = ""

    @property
    def query_string(self) -> str:
        if self.signature is None:
            return self.parameters
        return f"{self.parameters}&h={self.signature.replace('+', '%2B')}"


class ResponseStatus(str, Enum):
    OK = "ok"
    BAD_OTP = "bad_otp"
    REPLAYED_OTP = "replayed_otp"
    BAD_SIGNATURE = "bad_signature"
    MISSING_PARAMETER = "missing_parameter"
    NO_SUCH_CLIENT = "no_such_client"
    OPERATION_NOT_ALLOWED = "operation_not_allowed"
    BACKEND_ERROR = "backend_error"
    NOT_ENOUGH_ANSWERS = "not_enough_answers"
    REPLAYED_REQUEST = "replayed_request"

    @classmethod
    def lookup(cls, code: str | None) -> "ResponseStatus | None":
        if code is None:
            return None
        try:
            return cls(code.strip().lower())
        except ValueError:
            return None


@dataclass
class ValidationResponse:
    parameters: dict[str, str]
    signature: str | None = None
    canonical: str = ""

    @property
    def status_code(self) -> str | None:
        return self.parameters.get("status")

    @property
    def status(self) -> ResponseStatus | None:
        return ResponseStatus.lookup(self.status_code)

    @property
    def otp(self) -> str | None:
        return self.parameters.get("otp")

    @property
    def nonce(self) -> str | None:
        return self.parameters.get("nonce")

    @property
    def timestamp(self) -> int:
        """Internal device timestamp (8 Hz ticks) reported by the server."""
        raw = self.parameters.get("timestamp")
        if raw is None:
            raise ProtocolError("Missing timestamp attribute")
        try:
            return int(raw)
        except ValueError as e:
            raise ProtocolError(f"Invalid timestamp attribute: {raw!r}") from e

    @property
    def session_counter(self) -> int | None:
        raw = self.parameters.get("sessioncounter")
        return int(raw) if raw is not None and raw.isdigit() else None

    @property
    def session_use(self) -> int | None:
        raw = self.parameters.get("sessionuse")
        return int(raw) if raw is not None and raw.isdigit() else None


@dataclass
class ChainState:
    device_id: str
    remaining: deque[OTP]
    max_time_window: int
    first_timestamp: int | None = None
    last_timestamp: int | None = None
    verified: int = 0

    def record(self, timestamp: int) -> None:
        if self.first_timestamp is None:
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp
        self.verified += 1

    @property
    def elapsed(self) -> int:
        if self.first_timestamp is None or self.last_timestamp is None:
            return 0
        # the device timestamp is a 24-bit counter
        return (self.last_timestamp - self.first_timestamp) % (1 << 24)
