"""Claim endpoint: dispatch the faucet allotment."""

from fastapi import APIRouter

from faucet_gate.api.v1.dependencies import OrchestratorDep, raise_http
from faucet_gate.core.errors import FaucetError
from faucet_gate.schemas.claim import ClaimRequest, ClaimResponse

router = APIRouter(prefix="/claims", tags=["claims"])

LAMPORTS_PER_UNIT = 1_000_000_000


@router.post("", response_model=ClaimResponse)
async def claim(body: ClaimRequest, orchestrator: OrchestratorDep) -> ClaimResponse:
    """Send the claim amount to a wallet holding a valid attestation.

    Args:
        body: Wallet address and attestation token
        orchestrator: Claim orchestrator

    Returns:
        The transaction reference and how it was confirmed
    """
    try:
        receipt = await orchestrator.claim(body.wallet_address, body.verification_token or "")
    except FaucetError as err:
        raise_http(err)
    return ClaimResponse(
        signature=receipt.signature,
        amount=receipt.amount,
        recipient=receipt.wallet_address,
        message=f"{receipt.amount / LAMPORTS_PER_UNIT:g} tokens sent successfully",
        explorer_url=receipt.explorer_url,
        verified=receipt.verification.success,
        verification_method=receipt.verification.method,
        provisional=receipt.provisional,
    )
