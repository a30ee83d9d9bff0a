from __future__ import annotations

from typing import Protocol

from yubiverify.domain.entities import ValidationRequest, ValidationResponse


class DispatcherPort(Protocol):
    async def dispatch(
        self, request: ValidationRequest, *, timeout: float
    ) -> ValidationResponse:
        """
        Send one signed request to the validation pool.

        Return the first authoritative successful response, or raise the
        first authoritative failure. Exactly one outcome per call.
        """
