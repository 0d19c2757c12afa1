"""Application settings and configuration.

This module defines all configuration options for the Faucet Gate service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Secrets default to ``None`` so the application can start without them;
    the claim path raises a configuration error when it needs a missing one.
    """

    # Application metadata
    app_name: str = Field(default="Faucet Gate", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    public_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        alias="PUBLIC_BASE_URL",
    )

    # Attestation tokens
    verification_secret: str | None = Field(default=None, alias="VERIFICATION_SECRET")
    attestation_max_age_seconds: int = Field(
        default=86_400,
        alias="ATTESTATION_MAX_AGE_SECONDS",
    )

    # Funding account and ledger endpoints
    faucet_private_key: str | None = Field(default=None, alias="FAUCET_PRIVATE_KEY")
    ledger_rpc_urls: list[str] = Field(
        default=["https://rpc.gorbagana.wtf", "https://api.testnet.solana.com"],
        alias="LEDGER_RPC_URLS",
    )
    ledger_commitment: str = Field(default="confirmed", alias="LEDGER_COMMITMENT")
    ledger_request_timeout_seconds: float = Field(
        default=10.0,
        alias="LEDGER_REQUEST_TIMEOUT_SECONDS",
    )
    history_query_timeout_seconds: float = Field(
        default=10.0,
        alias="HISTORY_QUERY_TIMEOUT_SECONDS",
    )
    transaction_fetch_timeout_seconds: float = Field(
        default=5.0,
        alias="TRANSACTION_FETCH_TIMEOUT_SECONDS",
    )
    history_limit: int = Field(default=20, alias="HISTORY_LIMIT")
    explorer_base_url: str = Field(default="https://trashscan.io", alias="EXPLORER_BASE_URL")

    # Claim policy
    claim_amount_lamports: int = Field(default=500_000_000, alias="CLAIM_AMOUNT_LAMPORTS")
    claim_amount_tolerance: float = Field(default=0.2, alias="CLAIM_AMOUNT_TOLERANCE")
    claim_cooldown_seconds: int = Field(default=86_400, alias="CLAIM_COOLDOWN_SECONDS")
    eligibility_cache_ttl_seconds: float = Field(
        default=30.0,
        alias="ELIGIBILITY_CACHE_TTL_SECONDS",
    )
    # Availability-over-correctness switches; flip both for strict deployments.
    eligibility_fail_open: bool = Field(default=True, alias="ELIGIBILITY_FAIL_OPEN")
    confirmation_assume_success: bool = Field(
        default=True,
        alias="CONFIRMATION_ASSUME_SUCCESS",
    )
    confirmation_max_attempts: int = Field(default=3, alias="CONFIRMATION_MAX_ATTEMPTS")
    confirmation_backoff_seconds: float = Field(
        default=0.2,
        alias="CONFIRMATION_BACKOFF_SECONDS",
    )

    # Social post checks
    post_oembed_url: str = Field(
        default="https://publish.twitter.com/oembed",
        alias="POST_OEMBED_URL",
    )
    post_lookup_timeout_seconds: float = Field(default=4.0, alias="POST_LOOKUP_TIMEOUT_SECONDS")
    post_max_age_seconds: int = Field(default=86_400, alias="POST_MAX_AGE_SECONDS")
    post_freshness_check_enabled: bool = Field(
        default=True,
        alias="POST_FRESHNESS_CHECK_ENABLED",
    )
    reverification_cooldown_seconds: int = Field(
        default=86_400,
        alias="REVERIFICATION_COOLDOWN_SECONDS",
    )

    # Storage
    store_backend: str = Field(default="memory", alias="STORE_BACKEND")
    database_url: str = Field(default="sqlite:///./faucet.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Administrative override
    admin_token: str | None = Field(default=None, alias="ADMIN_TOKEN")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def claim_amount_band(self) -> tuple[int, int]:
        """Return the exclusive lamport band that identifies a faucet disbursement.

        Returns:
            ``(low, high)`` bounds around the configured claim amount.
        """
        delta = int(self.claim_amount_lamports * self.claim_amount_tolerance)
        return self.claim_amount_lamports - delta, self.claim_amount_lamports + delta


settings = Settings()
