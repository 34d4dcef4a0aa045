"""Signed bearer tokens.

Tokens are stateless HS256 JWTs carrying the user id, email and role names.
Logging out is a client-side concern: the token is simply discarded.
"""
from datetime import datetime, timedelta, timezone

from flask import current_app
from jose import JWTError, jwt


class InvalidToken(Exception):
    pass


def issue_token(user) -> str:
    now = datetime.now(timezone.utc)
    days = current_app.config.get("JWT_EXPIRES_DAYS", 7)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "roles": user.role_names,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=days)).timestamp()),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except JWTError as exc:
        raise InvalidToken(str(exc)) from exc

    if not payload.get("sub"):
        raise InvalidToken("Token has no subject")
    return payload


def bearer_token(header_value) -> str | None:
    if not header_value:
        return None
    scheme, _, token = header_value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
