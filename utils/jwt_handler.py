from datetime import datetime, timedelta
from jose import jwt, JWTError
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("JWT_HANDLER")

def create_access_token(data: dict):
    """
    Creates JWT token with expiry.
    """
    logger.debug("Access token creation requested")
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    logger.info(f"Access token created successfully with expiry {expire}")
    return encoded_jwt

def decode_access_token(token: str):
    """
    Decode JWT token and return payload.
    Raises ValueError if invalid or expired.
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise ValueError("Invalid token")

def build_token_payload(user: dict) -> dict:
    """Claims carried by every access token issued for a user document."""
    return {
        "sub": str(user["_id"]),
        "email": user.get("email"),
        "phone_number": user.get("phone_number"),
        "role": user.get("role", "USER"),
        "token_version": int(user.get("token_version", 0)),
    }
