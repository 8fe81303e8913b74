"""Logging setup and per-session context."""
