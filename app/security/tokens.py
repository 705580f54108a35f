"""
Opaque token generation for resume links and draft identifiers.
"""

import secrets

MIN_TOKEN_BYTES = 16  # 128 bits of entropy
RESUME_TOKEN_BYTES = 24
DRAFT_TOKEN_BYTES = 16


def generate_token(byte_length: int = RESUME_TOKEN_BYTES) -> str:
    """
    Generate a URL-safe random token (base64url, no padding).

    Args:
        byte_length: Number of random bytes; must be at least MIN_TOKEN_BYTES.

    Raises:
        ValueError: If byte_length is below the entropy floor.
    """
    if byte_length < MIN_TOKEN_BYTES:
        raise ValueError(f"Token length must be at least {MIN_TOKEN_BYTES} bytes")
    return secrets.token_urlsafe(byte_length)


def generate_resume_token() -> str:
    return generate_token(RESUME_TOKEN_BYTES)


def generate_draft_token() -> str:
    return generate_token(DRAFT_TOKEN_BYTES)
