from __future__ import annotations

import pytest

from content_gateway.auth.firebase import authenticate, extract_bearer_token, identity_from_claims
from content_gateway.errors import AuthError

from conftest import FakeVerifier


@pytest.mark.asyncio
async def test_valid_bearer_token():
    identity = await authenticate("Bearer good-token", FakeVerifier())

    assert identity.uid == "user-1"
    assert identity.email == "a@b.c"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "good-token", "Token good-token", "Bearer ", "bearer good-token"])
async def test_malformed_header_is_rejected(header):
    with pytest.raises(AuthError) as excinfo:
        await authenticate(header, FakeVerifier())

    assert excinfo.value.status_code == 401
    assert excinfo.value.to_body() == {"error": "unauthenticated: You must be logged in."}


@pytest.mark.asyncio
async def test_verifier_failure_is_rejected():
    with pytest.raises(AuthError):
        await authenticate("Bearer expired-token", FakeVerifier())


def test_extract_bearer_token_strips_whitespace():
    assert extract_bearer_token("Bearer  abc ") == "abc"


def test_identity_from_claims():
    identity = identity_from_claims({"sub": "u-9", "email": "x@y.z", "name": "X"})
    assert identity.uid == "u-9"
    assert identity.name == "X"

    with pytest.raises(ValueError):
        identity_from_claims({"email": "x@y.z"})
