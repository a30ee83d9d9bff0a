from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from yubiverify.client import YubicoClient
from yubiverify.domain.entities import ClientCredential
from yubiverify.domain.errors import VerificationError
from yubiverify.infrastructure.http.client import close_http_client, open_http_client
from yubiverify.logging import setup_logging
from yubiverify.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yubiverify",
        description="Verify one YubiKey OTP, or a chain of OTPs from one device.",
    )
    parser.add_argument("client_id")
    parser.add_argument("secret_key", help='base64 API key, or "none" to skip signing')
    parser.add_argument("otps", nargs="+", metavar="otp")
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument("--max-window", type=int, default=None, dest="max_time_window")
    return parser


async def _run(args: argparse.Namespace, settings: Settings) -> bool:
    secret_key = None if args.secret_key.lower() in ("none", "null") else args.secret_key
    credential = ClientCredential.from_encoded(args.client_id, secret_key)
    timeout = settings.timeout if args.timeout is None else args.timeout

    http = await open_http_client(timeout)
    yubico = YubicoClient(
        credential,
        client=http,
        hosts=settings.api_hosts,
        api_path=settings.api_path,
        use_https=settings.use_https,
        timeout=timeout,
        max_time_window=settings.max_time_window,
        sync_level=settings.sync_level,
    )
    try:
        if len(args.otps) == 1:
            return bool(await yubico.verify(args.otps[0]))
        return await yubico.verify_chain(args.otps, args.max_time_window)
    finally:
        await yubico.aclose()  # it won't close the shared client
        await close_http_client()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        asyncio.run(_run(args, settings))
    except VerificationError as e:
        logger.info("token validation failed", extra={"kind": e.kind.value})
        print(f"Token validation failed: {e}")
        return 1

    print("Success, the provided token is valid!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
