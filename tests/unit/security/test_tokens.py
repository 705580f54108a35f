import re

import pytest

from app.security.tokens import generate_draft_token, generate_resume_token, generate_token

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_resume_token_is_url_safe_without_padding():
    token = generate_resume_token()

    assert URL_SAFE.match(token)
    assert "=" not in token
    # 24 bytes -> 32 base64url characters
    assert len(token) == 32


def test_draft_token_matches_client_token_pattern():
    token = generate_draft_token()

    assert len(token) == 22
    assert re.match(r"^[A-Za-z0-9._~-]{10,}$", token)


def test_tokens_are_unique():
    tokens = {generate_token() for _ in range(200)}
    assert len(tokens) == 200


def test_short_tokens_rejected():
    with pytest.raises(ValueError):
        generate_token(8)
