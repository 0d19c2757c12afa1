"""Transaction verification endpoint."""

from fastapi import APIRouter

from faucet_gate.api.v1.dependencies import OrchestratorDep, raise_http
from faucet_gate.core.errors import FaucetError
from faucet_gate.schemas.verification import VerifyTransactionRequest, VerifyTransactionResponse

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/verify", response_model=VerifyTransactionResponse)
async def verify_transaction(
    body: VerifyTransactionRequest,
    orchestrator: OrchestratorDep,
) -> VerifyTransactionResponse:
    """Confirm that a transaction succeeded and involved the given wallet."""
    try:
        result = await orchestrator.verify_transaction(body.signature, body.wallet_address)
    except FaucetError as err:
        raise_http(err)
    return VerifyTransactionResponse(
        signature=body.signature,
        wallet_address=body.wallet_address,
        found=result.found,
        success=result.success,
        method=result.method,
        details=result.details,
        attempts=result.attempts,
    )
