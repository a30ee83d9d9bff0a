import logging
from collections import deque
from typing import Iterable

from yubiverify.application.verify_token import verify_token
from yubiverify.domain.entities import ChainState, ClientCredential, OTP
from yubiverify.domain.errors import (
    ConfigurationError,
    DeviceMismatchError,
    TimeWindowReachedError,
)
from yubiverify.domain.ports.dispatcher import DispatcherPort

logger = logging.getLogger(__name__)


def start_chain(otps: Iterable[OTP | str], max_time_window: int) -> ChainState:
    """
    Check that the tokens form a chain and build its accumulator.

    Runs before any request is sent.
    """
    try:
        tokens = [otp if isinstance(otp, OTP) else OTP(otp) for otp in otps]
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    if len(tokens) < 2:
        raise ConfigurationError("chain verification needs at least two OTPs")

    device_ids = [token.device_id for token in tokens]
    if len(set(device_ids)) != 1:
        raise DeviceMismatchError(device_ids)

    return ChainState(
        device_id=device_ids[0],
        remaining=deque(tokens),
        max_time_window=max_time_window,
    )


async def verify_chain(
    dispatcher: DispatcherPort,
    credential: ClientCredential,
    otps: Iterable[OTP | str],
    *,
    max_time_window: int,
    timeout: float,
    sync_level: int | str | None = None,
) -> bool:
    state = start_chain(otps, max_time_window)
    logger.info(
        "verifying otp chain",
        extra={"device_id": state.device_id, "length": len(state.remaining)},
    )

    # one token at a time: the server checks use counters per device
    while state.remaining:
        token = state.remaining.popleft()
        response = await verify_token(
            dispatcher,
            credential,
            token,
            timeout=timeout,
            sync_level=sync_level,
            timestamp=True,
        )
        state.record(response.timestamp)

    if state.elapsed > state.max_time_window:
        raise TimeWindowReachedError(state.elapsed, state.max_time_window)

    logger.info(
        "otp chain verified",
        extra={"device_id": state.device_id, "elapsed": state.elapsed},
    )
    return True
