"""Utility helpers for Faucet Gate."""
