from __future__ import annotations

import asyncio
import logging
import ssl
from enum import Enum
from typing import Sequence

import httpx

from yubiverify.domain.entities import (
    ClientCredential,
    ResponseStatus,
    ValidationRequest,
    ValidationResponse,
)
from yubiverify.domain.errors import (
    ConfigurationError,
    ConnectionTimeoutError,
    InvalidCertificateError,
    VerificationError,
)
from yubiverify.domain.response import validate_response
from yubiverify.settings import DEFAULT_API_HOSTS

logger = logging.getLogger("yubiverify.infrastructure.dispatch.dispatcher")


class SessionState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class VerificationSession:
    """
    At-most-once completion gate for one OTP dispatched to many hosts.

    The first call to `resolve()` wins: it fills the result slot and
    cancels every other attempt. Later calls are ignored.
    """

    def __init__(self, otp: str, hosts: Sequence[str], timeout: float) -> None:
        self.otp = otp
        self.hosts = list(hosts)
        self.timeout = timeout
        self.state = SessionState.PENDING
        self.resolved = asyncio.Event()
        self.tasks: dict[str, asyncio.Task] = {}
        self.failures: dict[str, str] = {}
        self.winner: str | None = None
        self._response: ValidationResponse | None = None
        self._error: BaseException | None = None
        self._last_transport_error: BaseException | None = None

    @property
    def is_resolved(self) -> bool:
        return self.state is SessionState.RESOLVED

    def resolve(
        self,
        *,
        response: ValidationResponse | None = None,
        error: BaseException | None = None,
        host: str | None = None,
    ) -> bool:
        # no await between the check and the set
        if self.state is SessionState.RESOLVED:
            return False
        self.state = SessionState.RESOLVED
        self.winner = host
        self._response = response
        self._error = error
        self.resolved.set()

        current = asyncio.current_task()
        for task in self.tasks.values():
            if task is not current and not task.done():
                task.cancel()
        return True

    def exhaust(
        self, host: str, reason: str, error: BaseException | None = None
    ) -> None:
        """Mark a host as done without an authoritative answer."""
        if self.is_resolved:
            return
        self.failures[host] = reason
        if error is not None:
            self._last_transport_error = error
        if len(self.failures) == len(self.hosts):
            timeout_error = ConnectionTimeoutError(self.timeout, self.failures)
            timeout_error.__cause__ = self._last_transport_error
            self.resolve(error=timeout_error)

    def result(self) -> ValidationResponse:
        if not self.is_resolved:
            raise RuntimeError("verification session is still pending")
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response


def _is_certificate_error(exc: BaseException | None) -> bool:
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, ssl.SSLCertVerificationError):
            return True
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return False


class MultiHostDispatcher:
    """
    Races one signed validation request against every configured host.

    The first authoritative answer (success or definitive failure) wins
    and the other in-flight requests are cancelled. A host answering
    REPLAYED_REQUEST keeps its slot open until its deadline. Transport
    errors and per-host timeouts only surface as ConnectionTimeoutError
    once no host is left.
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        credential: ClientCredential,
        hosts: Sequence[str] | None = None,
        api_path: str = "/wsapi/2.0/verify",
        use_https: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.client = client
        self.credential = credential
        # one attempt per distinct host
        self.hosts = list(dict.fromkeys(DEFAULT_API_HOSTS if hosts is None else hosts))
        if not self.hosts:
            raise ConfigurationError("at least one validation host is required")
        self.api_path = api_path if api_path.startswith("/") else f"/{api_path}"
        self.scheme = "https" if use_https else "http"
        self.timeout = timeout

    def _url(self, host: str, request: ValidationRequest) -> str:
        return f"{self.scheme}://{host}{self.api_path}?{request.query_string}"

    async def dispatch(
        self, request: ValidationRequest, *, timeout: float | None = None
    ) -> ValidationResponse:
        timeout = self.timeout if timeout is None else timeout
        session = VerificationSession(request.otp, self.hosts, timeout)
        logger.info(
            "dispatching verification",
            extra={"hosts": len(self.hosts), "timeout": timeout},
        )

        for host in self.hosts:
            session.tasks[host] = asyncio.create_task(
                self._attempt(session, host, request, timeout),
                name=f"yubiverify:{host}",
            )

        try:
            await session.resolved.wait()
        finally:
            for task in session.tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*session.tasks.values(), return_exceptions=True)

        logger.info(
            "verification resolved",
            extra={"winner": session.winner, "failures": session.failures},
        )
        return session.result()

    async def _attempt(
        self,
        session: VerificationSession,
        host: str,
        request: ValidationRequest,
        timeout: float,
    ) -> None:
        try:
            await asyncio.wait_for(
                self._query_host(session, host, request, timeout), timeout
            )
        except asyncio.TimeoutError:
            logger.warning("host timed out", extra={"host": host, "timeout": timeout})
            session.exhaust(host, "timeout")
        except Exception as e:  # noqa: BLE001
            # an unexpected failure still ends the race with one outcome
            logger.exception("unexpected error while querying host", extra={"host": host})
            session.resolve(error=e, host=host)

    async def _query_host(
        self,
        session: VerificationSession,
        host: str,
        request: ValidationRequest,
        timeout: float,
    ) -> None:
        try:
            resp = await self.client.get(self._url(host, request), timeout=timeout)
        except httpx.TimeoutException as e:
            logger.warning("host timed out", extra={"host": host, "timeout": timeout})
            session.exhaust(host, "timeout", e)
            return
        except httpx.HTTPError as e:
            if _is_certificate_error(e):
                session.resolve(error=InvalidCertificateError(host, str(e)), host=host)
                return
            logger.warning("host transport error", extra={"host": host, "error": str(e)})
            session.exhaust(host, f"transport error: {e}", e)
            return

        if resp.status_code != 200:
            logger.warning(
                "host answered with unexpected HTTP status",
                extra={"host": host, "status_code": resp.status_code},
            )
            session.exhaust(host, f"HTTP {resp.status_code}")
            return

        try:
            status, parsed = validate_response(
                resp.text,
                otp=request.otp,
                secret=self.credential.secret,
                client_id=self.credential.client_id,
                nonce=request.nonce,
            )
        except VerificationError as e:
            session.resolve(error=e, host=host)
            return

        if status is ResponseStatus.REPLAYED_REQUEST:
            logger.debug("host reported replayed request", extra={"host": host})
            # keep the slot open until the race resolves or this host times out
            await session.resolved.wait()
            return

        session.resolve(response=parsed, host=host)
