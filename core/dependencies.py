from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from typing import Optional
from pydantic import BaseModel
from db.db_operation import mongo_conn
from utils.ids import parse_object_id
from utils.jwt_handler import decode_access_token
from utils.logger import get_logger

logger = get_logger("Dependencies")

# tells fastapi to expect a token in the request header after login
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")

class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = "USER"
    token_version: int = 0

async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """
    Decode token, validate, fetch user from DB, and ensure token_version matches.
    Returns CurrentUser object.
    """
    try:
        payload = decode_access_token(token)
    except ValueError:
        logger.error("JWT Error: Invalid token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    user_id = payload.get("sub") # sub carries the user id
    oid = parse_object_id(user_id)
    if oid is None:
        logger.debug("User id not found in token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: no user id found"
        )

    user = await mongo_conn.users_collection.find_one({"_id": oid})
    if user is None:
        logger.warning(f"User not found for id: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    if user.get("disabled", False):
        logger.warning(f"Disabled user attempted access: {user_id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    if int(user.get("token_version", 0)) != payload.get("token_version"):
        logger.warning(f"Token version mismatch for user: {user_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked"
        )

    return CurrentUser(
        id=str(user["_id"]),
        email=user.get("email"),
        phone_number=user.get("phone_number"),
        first_name=user.get("first_name"),
        last_name=user.get("last_name"),
        role=user.get("role", "USER"),
        token_version=int(user.get("token_version", 0))
    )
