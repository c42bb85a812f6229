"""Access token validation (ES256).

Tokens are issued by the external identity service; this service only
verifies them.  Claims used: ``sub`` (user id, also the student id for
agents) and ``roles``.

Key management:
  JWT_PUBLIC_KEY_PATH set: verify against that PEM public key.  Nothing
    can be signed locally.
  unset (dev/test): an ephemeral key pair is generated on import so tests
    and the demo script can mint tokens with ``create_access_token``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from closer_club.core.config import SETTINGS

logger = logging.getLogger(__name__)

ALGORITHM = "ES256"
ISSUER = "closer-club-auth"
AUDIENCE = "closer-club"
ACCESS_TOKEN_TTL_MIN = 15

_private_key: ec.EllipticCurvePrivateKey | None
_public_key: ec.EllipticCurvePublicKey

if SETTINGS.jwt_public_key_path:
    _private_key = None
    _loaded = serialization.load_pem_public_key(
        Path(SETTINGS.jwt_public_key_path).read_bytes()
    )
    if not isinstance(_loaded, ec.EllipticCurvePublicKey):
        raise ValueError("JWT_PUBLIC_KEY_PATH must hold an EC (P-256) public key")
    _public_key = _loaded
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str, roles: list[str] | None = None) -> str:
    """Sign a token with the local dev key. Dev/test only."""
    if _private_key is None:
        raise RuntimeError("tokens are verified only; no local signing key")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pinned to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
