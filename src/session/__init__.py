"""Speculative document sessions."""
