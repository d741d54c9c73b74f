"""Signed JWT assertion for the OAuth 2.0 JWT-bearer grant.

The assertion is three base64url segments joined with dots:

    base64url(header) . base64url(claims) . base64url(RS256 signature)

Each step is a separate function so header/claim encoding and signing can
be tested without the token endpoint.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import time
from typing import TYPE_CHECKING, Any, Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from gmeet_scheduler.errors import TokenIssueError

if TYPE_CHECKING:
    from gmeet_scheduler.credentials.broker import ServiceCredential

TOKEN_URI = "https://oauth2.googleapis.com/token"
ASSERTION_LIFETIME = 3600  # seconds

_HEADER = {"alg": "RS256", "typ": "JWT"}

# BEGIN/END armor lines plus env-escaped newlines ("\n" as two characters)
_PEM_ARMOR = re.compile(r"-----(BEGIN|END) [A-Z ]*PRIVATE KEY-----")
_ESCAPED_NEWLINES = re.compile(r"(\\r\\n|\\n|\\r)")
_WHITESPACE = re.compile(r"\s+")


def b64url_encode(data: bytes) -> str:
    """URL-safe base64 without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def encode_segment(obj: dict[str, Any]) -> str:
    """Serialize a header or claim set as a compact JSON segment."""
    raw = json.dumps(obj, separators=(",", ":")).encode("utf-8")
    return b64url_encode(raw)


def load_signing_key(pem: str) -> rsa.RSAPrivateKey:
    """Decode a PEM private key that may have been flattened into an env var."""
    body = _PEM_ARMOR.sub("", pem or "")
    body = _ESCAPED_NEWLINES.sub("", body)
    body = _WHITESPACE.sub("", body)
    if not body:
        raise TokenIssueError("Private key is empty")

    try:
        der = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TokenIssueError(f"Private key is not valid base64: {e}") from e

    try:
        key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise TokenIssueError(f"Private key could not be loaded: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise TokenIssueError("Private key is not an RSA key")
    return key


def sign(content: bytes, key: rsa.RSAPrivateKey) -> str:
    """RSASSA-PKCS1-v1_5 with SHA-256, base64url encoded."""
    signature = key.sign(content, padding.PKCS1v15(), hashes.SHA256())
    return b64url_encode(signature)


def build_claims(identity: str, scope: str, now: Optional[float] = None) -> dict[str, Any]:
    issued_at = round(time.time() if now is None else now)
    return {
        "iss": identity,
        "scope": scope,
        "aud": TOKEN_URI,
        "exp": issued_at + ASSERTION_LIFETIME,
        "iat": issued_at,
    }


def build_assertion(credential: ServiceCredential, now: Optional[float] = None) -> str:
    """Return the complete ``header.claims.signature`` assertion."""
    key = load_signing_key(credential.private_key)
    claims = build_claims(credential.identity, credential.scope, now)
    unsigned = f"{encode_segment(_HEADER)}.{encode_segment(claims)}"
    return f"{unsigned}.{sign(unsigned.encode('ascii'), key)}"
