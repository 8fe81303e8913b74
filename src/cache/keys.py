# src/cache/keys.py - v1
"""Reversible encoding of arbitrary document ids into storage-safe keys.

Two passes:
  1. Percent-escape everything outside ``A-Za-z0-9_.-~`` (``quote(safe="")``).
  2. Replace the characters still unsafe as a path segment (``.`` and ``-``
     survive step 1; the rest of the set is listed for completeness) with
     ``(x)`` tokens.

Parentheses are always percent-escaped by step 1, so no token can appear in
escaped text by accident. Every token is three characters with a distinct
letter, so the set is prefix-free and whole-token ``str.replace`` is exact.
"""

from __future__ import annotations

from urllib.parse import quote, unquote

_ENCODING = "utf-8"
_ERRORS = "surrogatepass"

UNSAFE_CHAR_TOKENS: dict[str, str] = {
    ".": "(d)",
    "-": "(h)",
    "#": "(n)",
    "$": "(s)",
    "[": "(l)",
    "]": "(r)",
    "/": "(f)",
}

_TOKEN_CHARS: dict[str, str] = {token: char for char, token in UNSAFE_CHAR_TOKENS.items()}


def encode_key(raw: str) -> str:
    """Encode an arbitrary string into a storage-safe key."""
    encoded = quote(raw, safe="", encoding=_ENCODING, errors=_ERRORS)
    for char, token in UNSAFE_CHAR_TOKENS.items():
        encoded = encoded.replace(char, token)
    return encoded


def decode_key(safe_key: str) -> str:
    """Invert exactly one ``encode_key``."""
    decoded = safe_key
    for token, char in _TOKEN_CHARS.items():
        decoded = decoded.replace(token, char)
    return unquote(decoded, encoding=_ENCODING, errors=_ERRORS)
