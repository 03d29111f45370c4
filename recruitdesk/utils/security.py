"""Password hashing and signed access tokens."""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from passlib.context import CryptContext

SECRET_KEY = os.getenv("SECRET_KEY", "change-me-recruitdesk-secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def check_password(password: str, stored_hash: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Verify ``password`` against ``stored_hash``.

    The second item is a replacement hash when the stored one was made with
    outdated parameters, else None.
    """
    if not stored_hash:
        return False, None
    try:
        return pwd_context.verify_and_update(password, stored_hash)
    except ValueError:
        # not a hash this context recognises
        return False, None


def create_access_token(subject: str, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode({"sub": subject, "exp": expire}, SECRET_KEY, algorithm=ALGORITHM)


def read_token_subject(token: str) -> Optional[str]:
    """Email the token was issued for; None when it is forged, malformed or expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")
