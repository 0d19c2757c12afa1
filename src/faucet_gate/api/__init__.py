"""HTTP API for Faucet Gate."""
