"""Session token creation and verification.

Learn: The token a client holds is a JWT whose "sid" claim names a row
in the sessions table. The signature proves we issued it; the row proves
it hasn't been revoked. Both must hold for a session to resolve.

Claims: sub (user id), sid (session id), iss (base URL), iat, exp.
"""

from datetime import datetime, timezone

import jwt


class TokenError(Exception):
    """Raised when a token fails signature, issuer or expiry checks."""


def create_session_token(
    user_id: str,
    session_id: str,
    expires_at: datetime,
    secret: str,
    issuer: str,
    algorithm: str = "HS256",
) -> str:
    payload = {
        "sub": user_id,
        "sid": session_id,
        "iss": issuer,
        "exp": expires_at,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def verify_session_token(
    token: str,
    secret: str,
    issuer: str,
    algorithm: str = "HS256",
) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            issuer=issuer,
            options={"require": ["sub", "sid", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    return payload
