"""Eligibility endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from faucet_gate.api.v1.dependencies import OrchestratorDep, raise_http
from faucet_gate.core.errors import FaucetError
from faucet_gate.schemas.eligibility import EligibilityResponse

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


@router.get("/{wallet_address}", response_model=EligibilityResponse)
async def check_eligibility(
    wallet_address: str,
    orchestrator: OrchestratorDep,
    force_refresh: Annotated[bool, Query(alias="forceRefresh")] = False,
) -> EligibilityResponse:
    """Return whether a wallet may claim now, and when it may claim next."""
    try:
        result = await orchestrator.check_eligibility(wallet_address, force_refresh=force_refresh)
    except FaucetError as err:
        raise_http(err)
    return EligibilityResponse(
        eligible=result.eligible,
        message=result.message,
        last_claim_time=result.last_claim_time,
        next_claim_time=result.next_claim_time,
        remaining_hours=result.remaining_hours,
        warning=result.warning,
        rpc_status=result.rpc_status,
        last_transaction=result.last_transaction,
        transaction_count=result.transaction_count,
    )
