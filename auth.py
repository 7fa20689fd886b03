"""
Password hashing and the session token stub.

The token only identifies the caller (base64 JSON of id and username) for the
profile routes and for stamping createdBy. It is not signed and grants no
permissions.
"""

import base64
import binascii
import json
import logging
from typing import Optional

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_COOKIE = "token"
TOKEN_MAX_AGE = 60 * 60 * 24 * 7  # 1 week


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def issue_token(user: dict) -> str:
    raw = json.dumps({"id": user["id"], "username": user["username"]})
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def read_token(token: Optional[str]) -> Optional[dict]:
    """Decode a token issued by issue_token, or return None if it is unreadable."""
    if not token:
        return None
    try:
        claims = json.loads(base64.urlsafe_b64decode(token.encode("ascii")))
    except (binascii.Error, UnicodeError, ValueError):
        logger.debug("Ignoring malformed token")
        return None
    # The id is used as a store lookup key, so it must be a plain string
    if not isinstance(claims, dict) or not isinstance(claims.get("id"), str):
        return None
    return claims
