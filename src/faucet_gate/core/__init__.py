"""Configuration, error taxonomy and low-level helpers."""
