from typing import Callable

import yubiverify.domain.query as query
from yubiverify.domain.entities import ClientCredential, OTP, ValidationResponse
from yubiverify.domain.errors import ConfigurationError
from yubiverify.domain.ports.dispatcher import DispatcherPort


async def verify_token(
    dispatcher: DispatcherPort,
    credential: ClientCredential,
    otp: OTP | str,
    *,
    timeout: float,
    sync_level: int | str | None = None,
    timestamp: bool = True,
    generate_nonce: Callable[[], str] = query.generate_nonce,
) -> ValidationResponse:
    try:
        token = otp if isinstance(otp, OTP) else OTP(otp)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    request = query.build_request(
        credential,
        token,
        generate_nonce(),
        timestamp=timestamp,
        sync_level=sync_level,
        timeout=timeout,
    )
    return await dispatcher.dispatch(request, timeout=timeout)
