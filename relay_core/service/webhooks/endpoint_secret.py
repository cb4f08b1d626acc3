"""Endpoint secret generation."""

import secrets

SECRET_PREFIX = "whsec_"
SECRET_BYTES = 32


def generate_secret() -> str:
    """A fresh endpoint secret: ``whsec_`` followed by 32 random bytes in hex."""
    return f"{SECRET_PREFIX}{secrets.token_hex(SECRET_BYTES)}"
