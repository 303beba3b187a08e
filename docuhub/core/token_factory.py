"""Pure functions for creating and decoding HS256 login tokens.

Encode/decode only, no state. ``create_token`` is called by the login
endpoint; ``decode_token`` by the auth dependency and the usage socket.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

ISSUER = "docuhub"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload. Immutable."""
    sub: str
    role: str
    name: str
    exp: datetime


def create_token(
    subject: str,
    role: str,
    secret: str,
    algorithm: str = "HS256",
    expires_hours: int = 24,
    name: str = "",
) -> str:
    """Create a signed JWT.

    Args:
        subject: User id.
        role: Global role claim (``admin``, ``editor``, ``viewer``).
        secret: HMAC signing key.
        algorithm: Only HS256 supported.
        expires_hours: Hours until expiry. Negative values mint an already-expired token.
        name: Display name, copied onto version snapshots as the author.
    """
    if algorithm != "HS256":
        raise ValueError(f"Unsupported algorithm: {algorithm}")

    now = time.time()
    payload = {
        "sub": subject,
        "role": role,
        "name": name,
        "iat": int(now),
        "exp": int(now + expires_hours * 3600),
        "iss": ISSUER,
    }

    header = {"alg": "HS256", "typ": "JWT"}
    segments = [
        _b64encode(json.dumps(header).encode()),
        _b64encode(json.dumps(payload).encode()),
    ]
    signing_input = b".".join(segments)
    signature = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
    segments.append(_b64encode(signature))
    return b".".join(segments).decode()


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[TokenPayload]:
    """Decode and validate a JWT.

    Returns ``None`` on any failure (bad signature, wrong issuer, expired,
    malformed); callers decide what absence means.
    """
    if algorithm != "HS256":
        return None
    try:
        parts = token.encode().split(b".")
        if len(parts) != 3:
            return None

        signing_input = parts[0] + b"." + parts[1]
        expected_sig = hmac.new(secret.encode(), signing_input, hashlib.sha256).digest()
        if not hmac.compare_digest(expected_sig, _b64decode(parts[2])):
            return None

        payload = json.loads(_b64decode(parts[1]))
        if payload.get("iss") != ISSUER:
            return None

        exp = payload.get("exp", 0)
        if time.time() > exp:
            return None

        return TokenPayload(
            sub=payload.get("sub", ""),
            role=payload.get("role", ""),
            name=payload.get("name", ""),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (json.JSONDecodeError, KeyError, ValueError, IndexError, TypeError):
        return None


def _b64encode(data: bytes) -> bytes:
    return base64.urlsafe_b64encode(data).rstrip(b"=")


def _b64decode(data: bytes) -> bytes:
    padding = 4 - len(data) % 4
    if padding != 4:
        data += b"=" * padding
    return base64.urlsafe_b64decode(data)
