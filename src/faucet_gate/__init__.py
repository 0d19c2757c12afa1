"""Faucet Gate: attestation-gated, rate-limited token faucet."""

__version__ = "0.1.0"
