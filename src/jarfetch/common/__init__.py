"""Shared helpers (logging, HTTP) used across jarfetch modules."""
