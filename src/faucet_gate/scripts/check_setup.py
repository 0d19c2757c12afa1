#!/usr/bin/env python3
"""
Faucet Gate setup check

Exit code:
  0 = configuration usable
  1 = at least one required check failed

Read-only: decodes the configured secrets, then asks the configured ledger
endpoints for the funding balance. Nothing is submitted.

Typical usage:
  python -m faucet_gate.scripts.check_setup --skip-ledger
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from faucet_gate.core.errors import FaucetError
from faucet_gate.core.settings import Settings, settings
from faucet_gate.services.ledger import LedgerClient, LedgerConfig
from faucet_gate.utils.txcodec import Keypair

LAMPORTS_PER_UNIT = 1_000_000_000


def say(msg: str) -> None:
    print(f"[faucet-check] {msg}")


def fail(msg: str) -> None:
    print(f"[faucet-check][FAIL] {msg}", file=sys.stderr)


def check_secrets(config: Settings) -> Keypair | None:
    """Validate the signing secret and funding key; return the funding keypair."""
    if config.verification_secret:
        say("VERIFICATION_SECRET: set")
    else:
        fail("VERIFICATION_SECRET: not set")

    if not config.faucet_private_key:
        fail("FAUCET_PRIVATE_KEY: not set")
        return None
    try:
        keypair = Keypair.from_secret(config.faucet_private_key)
    except ValueError as exc:
        fail(f"FAUCET_PRIVATE_KEY: undecodable ({exc})")
        return None
    say(f"FAUCET_PRIVATE_KEY: ok, funding address {keypair.address}")
    return keypair


async def check_ledger(config: Settings, keypair: Keypair) -> bool:
    """Fetch the funding balance from the first reachable endpoint."""
    client = LedgerClient(
        LedgerConfig(
            endpoints=tuple(config.ledger_rpc_urls),
            commitment=config.ledger_commitment,
            timeout_seconds=float(config.ledger_request_timeout_seconds),
        )
    )
    try:
        balance = await client.get_balance(keypair.address)
    except FaucetError as exc:
        fail(f"Ledger unreachable: {exc.message}")
        return False
    finally:
        await client.close()

    say(f"Ledger endpoint: {client.active_endpoint}")
    say(f"Funding balance: {balance / LAMPORTS_PER_UNIT:g} ({balance} lamports)")
    if balance < config.claim_amount_lamports:
        fail(f"Balance below one claim ({config.claim_amount_lamports} lamports)")
        return False
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check Faucet Gate configuration")
    parser.add_argument(
        "--skip-ledger",
        action="store_true",
        help="only validate local secrets, do not contact the ledger",
    )
    args = parser.parse_args(argv)

    ok = bool(settings.verification_secret)
    keypair = check_secrets(settings)
    ok = ok and keypair is not None
    if keypair is not None and not args.skip_ledger:
        ok = asyncio.run(check_ledger(settings, keypair)) and ok

    say("Setup looks good." if ok else "Some checks failed; fix them before serving claims.")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
