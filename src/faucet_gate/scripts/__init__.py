"""Operator tooling for Faucet Gate."""
