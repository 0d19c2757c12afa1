"""Error taxonomy shared by the claim engine and the API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import status


class FaucetError(RuntimeError):
    """Base exception for every rejection the faucet reports to a caller.

    Attributes:
        reason: Stable machine-readable rejection code.
        status_code: HTTP status the API layer maps this error to.
    """

    reason = "faucet_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_detail(self) -> dict[str, Any]:
        """Return the structured rejection body."""
        return {"reason": self.reason, "message": self.message}


class ValidationError(FaucetError):
    """Malformed address, URL or payload. Never retried."""

    reason = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class ReplayError(FaucetError):
    """The post or attestation has already been consumed."""

    reason = "already_used"
    status_code = status.HTTP_409_CONFLICT


class EligibilityError(FaucetError):
    """Cooldown still active for the wallet."""

    reason = "not_eligible"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(
        self,
        message: str,
        *,
        remaining_hours: int,
        next_claim_time: datetime | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message, reason=reason)
        self.remaining_hours = remaining_hours
        self.next_claim_time = next_claim_time

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["remainingHours"] = self.remaining_hours
        if self.next_claim_time is not None:
            detail["nextClaimTime"] = self.next_claim_time.isoformat()
        return detail


class RateLimitError(EligibilityError):
    """The wallet requested another attestation inside the re-verification window."""

    reason = "rate_limited"


class ConfigurationError(FaucetError):
    """A secret or credential is missing or cannot be decoded."""

    reason = "service_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InsufficientFundsError(FaucetError):
    """The funding account cannot cover the transfer."""

    reason = "insufficient_funds"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class TransportError(FaucetError):
    """The ledger endpoint was unreachable, timed out or returned malformed data."""

    reason = "network_error"
    status_code = status.HTTP_502_BAD_GATEWAY


class LedgerRpcError(TransportError):
    """The ledger answered with a JSON-RPC error object."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class SubmissionRejectedError(TransportError):
    """The ledger refused to accept a signed transaction."""

    reason = "submission_rejected"


class ClaimError(FaucetError):
    """Generic claim failure. The attestation stays usable."""

    reason = "claim_failed"
