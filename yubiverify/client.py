from __future__ import annotations

from typing import Iterable, Optional, Sequence

import httpx

from yubiverify.application.verify_chain import verify_chain
from yubiverify.application.verify_token import verify_token
from yubiverify.domain.entities import ClientCredential, OTP, ValidationResponse
from yubiverify.infrastructure.dispatch.dispatcher import MultiHostDispatcher
from yubiverify.infrastructure.http.client import build_http_client
from yubiverify.settings import Settings


class YubicoClient:
    """
    Verify YubiKey OTPs against the validation pool.

    Usage:
        async with YubicoClient(ClientCredential.from_encoded(id, key)) as yubico:
            await yubico.verify(otp)
            await yubico.verify_chain([otp1, otp2])
    """

    def __init__(
        self,
        credential: ClientCredential,
        *,
        client: Optional[httpx.AsyncClient] = None,
        hosts: Sequence[str] | None = None,
        api_path: str = "/wsapi/2.0/verify",
        use_https: bool = True,
        timeout: float = 10.0,
        max_time_window: int = 40,
        sync_level: int | str | None = 75,
    ) -> None:
        self.credential = credential
        self.timeout = timeout
        self.max_time_window = max_time_window
        self.sync_level = sync_level
        self._owns_client: bool = client is None
        self._client: httpx.AsyncClient = client or build_http_client(timeout)
        self.dispatcher = MultiHostDispatcher(
            client=self._client,
            credential=credential,
            hosts=hosts,
            api_path=api_path,
            use_https=use_https,
            timeout=timeout,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, client: Optional[httpx.AsyncClient] = None
    ) -> "YubicoClient":
        return cls(
            ClientCredential.from_encoded(settings.client_id, settings.secret_key),
            client=client,
            hosts=settings.api_hosts,
            api_path=settings.api_path,
            use_https=settings.use_https,
            timeout=settings.timeout,
            max_time_window=settings.max_time_window,
            sync_level=settings.sync_level,
        )

    async def verify(
        self,
        otp: OTP | str,
        timeout: float | None = None,
        *,
        return_response: bool = False,
    ) -> bool | ValidationResponse:
        response = await verify_token(
            self.dispatcher,
            self.credential,
            otp,
            timeout=self.timeout if timeout is None else timeout,
            sync_level=self.sync_level,
        )
        return response if return_response else True

    async def verify_chain(
        self,
        otps: Iterable[OTP | str],
        max_time_window: int | None = None,
        timeout: float | None = None,
    ) -> bool:
        return await verify_chain(
            self.dispatcher,
            self.credential,
            otps,
            max_time_window=(
                self.max_time_window if max_time_window is None else max_time_window
            ),
            timeout=self.timeout if timeout is None else timeout,
            sync_level=self.sync_level,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "YubicoClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
