"""Password hashing, API tokens and at-rest encryption of store secrets."""

import base64
import hashlib
from datetime import datetime, timedelta
from functools import lru_cache

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from jose import JWTError, jwt
from stockops.core.config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


@lru_cache(maxsize=4)
def _fernet(secret_key: str) -> Fernet:
    # Fernet wants 32 url-safe base64 bytes; SECRET_KEY can be any string
    digest = hashlib.sha256(secret_key.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_secret(value: str) -> str:
    """Encrypt a store API key for storage."""
    return _fernet(settings.SECRET_KEY).encrypt(value.encode()).decode()


def decrypt_secret(token: str) -> str:
    """Decrypt a stored API key.

    Raises:
        ValueError: The value was encrypted under a different SECRET_KEY
            or is corrupt
    """
    try:
        return _fernet(settings.SECRET_KEY).decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise ValueError("Stored secret cannot be decrypted with the current SECRET_KEY") from e


def create_access_token(username: str, expires_delta: timedelta | None = None) -> str:
    now = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": username, "iat": now, "exp": now + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the username a token was issued to.

    Raises:
        ValueError: Expired, tampered or subject-less token
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e
    username = claims.get("sub")
    if not username:
        raise ValueError("Token has no subject")
    return username
