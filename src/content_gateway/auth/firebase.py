from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials as firebase_credentials

from ..errors import AuthError
from ..models.request import Identity


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Identity: ...


class FirebaseTokenVerifier:
    """
    Verifies Firebase ID tokens with firebase-admin.

    The admin app is initialized once per verifier (explicit service account
    when given, application-default credentials otherwise). Verification
    fetches signing keys over the network, so it runs in a worker thread.
    """

    APP_NAME = "content-gateway"

    def __init__(self, credentials_path: Optional[Path] = None) -> None:
        try:
            self._app = firebase_admin.get_app(self.APP_NAME)
        except ValueError:
            cred = (
                firebase_credentials.Certificate(str(credentials_path))
                if credentials_path
                else firebase_credentials.ApplicationDefault()
            )
            self._app = firebase_admin.initialize_app(cred, name=self.APP_NAME)

    async def verify(self, token: str) -> Identity:
        claims = await asyncio.to_thread(firebase_auth.verify_id_token, token, self._app)
        return identity_from_claims(claims)


def identity_from_claims(claims: Mapping[str, Any]) -> Identity:
    uid = claims.get("uid") or claims.get("sub")
    if not uid:
        raise ValueError("Token carries no uid")
    return Identity(uid=str(uid), email=claims.get("email"), name=claims.get("name"))


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthError()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthError()
    return token


async def authenticate(authorization: Optional[str], verifier: TokenVerifier) -> Identity:
    """
    Resolve the caller from an ``Authorization: Bearer <token>`` header.
    Fails closed: any verification problem is an ``AuthError``.
    """
    token = extract_bearer_token(authorization)
    try:
        return await verifier.verify(token)
    except Exception as exc:
        logger.warning("Token verification failed: %s", exc)
        raise AuthError() from exc
