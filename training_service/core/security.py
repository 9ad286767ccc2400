# training_service/core/security.py
import os
from datetime import datetime, timedelta
from typing import Optional
from dotenv import load_dotenv
from jose import ExpiredSignatureError, JWTError, jwt

from training_service.core.exceptions import AuthenticationError

load_dotenv()

# ─── JWT SETTINGS ─────────────────────────────────────────────────────────────
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Load and validate secret
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    raise RuntimeError("Missing JWT_SECRET_KEY environment variable")

ALGORITHM = os.getenv("ALGORITHM", "HS256")

BEARER_PREFIX = "Bearer "


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token with expiration and a 'type' claim.

    Tokens are issued by the user service in production; this is used by
    scripts and the test suite.
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "type": "access"
    })
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=ALGORITHM)


def extract_token(authorization: Optional[str], fallback: Optional[str]) -> Optional[str]:
    """Bearer token from the Authorization header, else the x-auth-token header."""
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX):].strip()
        if token:
            return token
    if fallback:
        return fallback.strip() or None
    return None


def decode_token(token: str) -> dict:
    """Decode and validate a JWT, enforcing algorithm lockdown."""
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Token is invalid")
    return payload
