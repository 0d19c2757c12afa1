"""Claim history endpoint."""

from fastapi import APIRouter, Response, status

from faucet_gate.api.v1.dependencies import OrchestratorDep, raise_http
from faucet_gate.core.errors import FaucetError
from faucet_gate.schemas.history import HistoryEntryResponse

router = APIRouter(prefix="/history", tags=["history"])


@router.get("/{wallet_address}", response_model=list[HistoryEntryResponse])
async def get_history(
    wallet_address: str,
    response: Response,
    orchestrator: OrchestratorDep,
) -> list[HistoryEntryResponse]:
    """Return a wallet's claims, most recent first.

    When the ledger cannot be queried only locally recorded claims are
    returned, with status 206 and ``X-Ledger-Status: unavailable``.
    """
    try:
        result = await orchestrator.get_history(wallet_address)
    except FaucetError as err:
        raise_http(err)
    if not result.ledger_available:
        response.status_code = status.HTTP_206_PARTIAL_CONTENT
        response.headers["X-Ledger-Status"] = "unavailable"
    return [
        HistoryEntryResponse(
            id=entry.id,
            timestamp=entry.timestamp,
            amount=entry.amount,
            tx_ref=entry.tx_ref,
            source=entry.source,
        )
        for entry in result.entries
    ]
