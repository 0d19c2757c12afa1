"""Attestation endpoints: prove the social action, receive a claim token."""

from fastapi import APIRouter

from faucet_gate.api.v1.dependencies import OrchestratorDep, raise_http
from faucet_gate.core.errors import FaucetError
from faucet_gate.schemas.attestation import AttestationRequest, AttestationResponse

router = APIRouter(prefix="/attestations", tags=["attestations"])


@router.post("", response_model=AttestationResponse)
async def issue_attestation(
    body: AttestationRequest,
    orchestrator: OrchestratorDep,
) -> AttestationResponse:
    """Verify a post link for a wallet and issue a single-use attestation token.

    Args:
        body: Post URL and wallet address
        orchestrator: Claim orchestrator

    Returns:
        The signed attestation token and the verified post id
    """
    try:
        receipt = await orchestrator.issue_attestation(body.post_url, body.wallet_address)
    except FaucetError as err:
        raise_http(err)
    return AttestationResponse(
        post_id=receipt.post_id,
        wallet_address=receipt.wallet_address,
        verified_at=receipt.verified_at,
        verification_token=receipt.token,
        legacy_token=receipt.legacy_token,
    )
