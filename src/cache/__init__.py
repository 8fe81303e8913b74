"""Identifier encoding and cache-aside orchestration."""
