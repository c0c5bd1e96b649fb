import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Header
from jose import jwt, JWTError

from errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("ACCESS_TOKEN_SECRET", "dev-secret-change-me")
JWT_ALG = "HS256"
TOKEN_TTL = timedelta(hours=3)
DECODE_OPTIONS = {"verify_aud": False, "verify_sub": False, "verify_jti": False}


def create_token(payload: Dict[str, Any]) -> str:
    # whatever the client sends is signed as-is; the token proves nothing more
    claims = dict(payload)
    now = datetime.now(timezone.utc)
    claims["iat"] = int(now.timestamp())
    claims["exp"] = int((now + TOKEN_TTL).timestamp())
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> Dict[str, Any]:
    # only signature and expiry are checked; other claims are the client's own payload
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], options=DECODE_OPTIONS)


def verify_jwt(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """
    Dependency guarding a route with a `Bearer <token>` header.
    Returns the decoded claims; raises Unauthorized otherwise.
    """
    if not authorization:
        raise Unauthorized()
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        logger.warning("Authorization header without a token")
        raise Unauthorized()
    try:
        decoded = decode_token(parts[1])
    except JWTError as exc:
        logger.warning("Rejected token: %s", exc)
        raise Unauthorized()
    logger.debug("Token accepted for %s", decoded.get("email"))
    return decoded


def ensure_owner(decoded: Dict[str, Any], email: str) -> None:
    if decoded.get("email") != email:
        raise Forbidden()
