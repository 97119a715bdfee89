# services/auth_service.py
"""
Registration, login and session lifecycle.

Sign-up is two-step: a six digit code is sent to an email address or phone
number, then the code is exchanged for an account. Sessions are a short
lived JWT access token plus an opaque refresh token that is rotated on
every use.
"""
import math
from datetime import datetime, timedelta
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import DuplicateKeyError
from db.db_operation import mongo_conn
from core.exceptions import ConflictException, ForbiddenException, UnauthorizedException, ValidationFailure
from models.user import Role
from services.user_service import find_by_destination, get_user_doc, serialize_user
from settings.config import settings
from utils.email import send_password_reset_email, send_verification_email
from utils.hash import hash_password, verify_password
from utils.ids import parse_object_id
from utils.jwt_handler import build_token_payload, create_access_token
from utils.logger import get_logger
from utils.sms import send_password_reset_sms, send_verification_sms
from utils.token import generate_refresh_token, generate_verification_code

logger = get_logger("Auth_Service")

PURPOSE_REGISTRATION = "REGISTRATION"
PURPOSE_PASSWORD_RESET = "PASSWORD_RESET"

INVALID_CODE = "Invalid or expired verification code"
RESET_CODE_SENT = "If the account exists, a reset code has been sent"

_DUPLICATE_MESSAGES = {
    "email": "Email already in use",
    "phone_number": "Phone number already in use"
}

async def _issue_code(destination: str, purpose: str) -> str:
    """
    Store a fresh code for destination, replacing any earlier one.
    Refuses while the previous code is younger than the resend cooldown.
    """
    codes = mongo_conn.verification_codes_collection
    now = datetime.utcnow()
    existing = await codes.find_one({"destination": destination, "purpose": purpose})
    if existing:
        elapsed = (now - existing["created_at"]).total_seconds()
        cooldown = settings.VERIFICATION_RESEND_COOLDOWN_SECONDS
        if elapsed < cooldown:
            raise ValidationFailure(
                f"Please wait {math.ceil(cooldown - elapsed)} seconds before requesting a new code"
            )

    await codes.delete_many({"destination": destination, "purpose": purpose})
    code = generate_verification_code()
    await codes.insert_one({
        "destination": destination,
        "purpose": purpose,
        "code": code,
        "expires_at": now + timedelta(minutes=settings.VERIFICATION_CODE_TTL_MINUTES),
        "created_at": now
    })
    return code

async def _consume_code(destination: str, purpose: str, code: str):
    codes = mongo_conn.verification_codes_collection
    record = await codes.find_one({"destination": destination, "purpose": purpose, "code": code})
    if not record or record["expires_at"] < datetime.utcnow():
        logger.warning(f"Invalid verification code for {destination}")
        raise ValidationFailure(INVALID_CODE)
    # single use
    await codes.delete_one({"_id": record["_id"]})

async def _deliver(field: str, destination: str, code: str, purpose: str) -> bool:
    if field == "email":
        sender = send_verification_email if purpose == PURPOSE_REGISTRATION else send_password_reset_email
    else:
        sender = send_verification_sms if purpose == PURPOSE_REGISTRATION else send_password_reset_sms
    # smtp / twilio clients are blocking
    return await run_in_threadpool(sender, destination, code)

async def create_refresh_token(user_id: str) -> str:
    tokens = mongo_conn.refresh_tokens_collection
    now = datetime.utcnow()
    await tokens.delete_many({"user_id": user_id, "expires_at": {"$lt": now}})
    token = generate_refresh_token()
    await tokens.insert_one({
        "token": token,
        "user_id": user_id,
        "expires_at": now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        "revoked": False,
        "created_at": now
    })
    return token

async def _issue_tokens(user: dict) -> dict:
    return {
        "access_token": create_access_token(build_token_payload(user)),
        "refresh_token": await create_refresh_token(str(user["_id"])),
        "token_type": "bearer"
    }

async def _revoke_sessions(user_id: str):
    await mongo_conn.refresh_tokens_collection.update_many({"user_id": user_id}, {"$set": {"revoked": True}})

async def send_verification_code(dto):
    if await find_by_destination(dto.field, dto.destination):
        raise ConflictException(_DUPLICATE_MESSAGES[dto.field])

    code = await _issue_code(dto.destination, PURPOSE_REGISTRATION)
    if not await _deliver(dto.field, dto.destination, code, PURPOSE_REGISTRATION):
        # drop the undelivered code so the cooldown does not block a retry
        await mongo_conn.verification_codes_collection.delete_many(
            {"destination": dto.destination, "purpose": PURPOSE_REGISTRATION}
        )
        raise ValidationFailure("Failed to send verification code")

    logger.info(f"Verification code sent to {dto.destination}")
    return {"message": f"Verification code sent. It will expire in {settings.VERIFICATION_CODE_TTL_MINUTES} minutes."}

async def verify_and_register(dto):
    if await find_by_destination(dto.field, dto.destination):
        raise ConflictException(_DUPLICATE_MESSAGES[dto.field])
    await _consume_code(dto.destination, PURPOSE_REGISTRATION, dto.code)

    now = datetime.utcnow()
    user_doc = {
        dto.field: dto.destination,
        "first_name": dto.first_name,
        "last_name": dto.last_name,
        "password": hash_password(dto.password),
        "role": Role.USER.value,
        "token_version": 0,
        "disabled": False,
        "is_verified": True,
        "verified_at": now,
        "created_at": now,
        "updated_at": now
    }
    try:
        result = await mongo_conn.users_collection.insert_one(user_doc)
    except DuplicateKeyError:
        raise ConflictException(_DUPLICATE_MESSAGES[dto.field])
    logger.info(f"User registered with id: {result.inserted_id}")
    return {**await _issue_tokens(user_doc), "user": serialize_user(user_doc)}

async def login(dto):
    user = await find_by_destination(dto.field, dto.destination)
    if not user or not verify_password(dto.password, user["password"]):
        logger.warning(f"Login failed for {dto.destination}")
        raise UnauthorizedException("Invalid credentials")
    if user.get("disabled", False):
        raise ForbiddenException("Account disabled")
    logger.info(f"Login successful: {dto.destination}")
    return {**await _issue_tokens(user), "user": serialize_user(user)}

async def refresh_tokens(refresh_token: str):
    tokens = mongo_conn.refresh_tokens_collection
    record = await tokens.find_one({"token": refresh_token})
    if not record or record.get("revoked") or record["expires_at"] < datetime.utcnow():
        raise UnauthorizedException("Invalid refresh token")

    user = await mongo_conn.users_collection.find_one({"_id": parse_object_id(record["user_id"])})
    if not user or user.get("disabled", False):
        raise UnauthorizedException("Invalid refresh token")

    # rotation: the presented token dies; losing this race means it was reused
    result = await tokens.update_one({"_id": record["_id"], "revoked": False}, {"$set": {"revoked": True}})
    if result.modified_count == 0:
        raise UnauthorizedException("Invalid refresh token")
    logger.info(f"Refresh token rotated for user {record['user_id']}")
    return await _issue_tokens(user)

async def logout(user_id: str):
    await _revoke_sessions(user_id)
    user = await get_user_doc(user_id)
    await mongo_conn.users_collection.update_one({"_id": user["_id"]}, {"$inc": {"token_version": 1}})
    logger.info(f"User {user_id} logged out")
    return {"message": "Logged out successfully"}

async def change_password(user_id: str, dto):
    user = await get_user_doc(user_id)
    if not verify_password(dto.current_password, user["password"]):
        raise ValidationFailure("Current password is incorrect")
    await mongo_conn.users_collection.update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(dto.new_password), "updated_at": datetime.utcnow()},
         "$inc": {"token_version": 1}}
    )
    await _revoke_sessions(user_id)
    logger.info(f"Password changed for user {user_id}")
    return {"message": "Password changed successfully"}

async def forgot_password(dto):
    """Sends a reset code when the account exists; the answer is the same either way."""
    user = await find_by_destination(dto.field, dto.destination)
    if user:
        try:
            code = await _issue_code(dto.destination, PURPOSE_PASSWORD_RESET)
        except ValidationFailure:
            # same answer as for an unknown account
            logger.info(f"Password reset for {dto.destination} still in cooldown")
            return {"message": RESET_CODE_SENT}
        if not await _deliver(dto.field, dto.destination, code, PURPOSE_PASSWORD_RESET):
            logger.error(f"Password reset code could not be delivered to {dto.destination}")
    else:
        logger.info(f"Password reset requested for unknown {dto.field}")
    return {"message": RESET_CODE_SENT}

async def confirm_forgot_password(dto):
    user = await find_by_destination(dto.field, dto.destination)
    if not user:
        raise ValidationFailure(INVALID_CODE)
    await _consume_code(dto.destination, PURPOSE_PASSWORD_RESET, dto.code)
    await mongo_conn.users_collection.update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(dto.new_password), "updated_at": datetime.utcnow()},
         "$inc": {"token_version": 1}}
    )
    await _revoke_sessions(str(user["_id"]))
    logger.info(f"Password reset for user {user['_id']}")
    return {"message": "Password reset successfully"}

async def create_admin(dto):
    if await find_by_destination("email", dto.email):
        raise ConflictException(_DUPLICATE_MESSAGES["email"])
    now = datetime.utcnow()
    user_doc = {
        "email": dto.email,
        "first_name": dto.first_name,
        "last_name": dto.last_name,
        "password": hash_password(dto.password),
        "role": Role.ADMIN.value,
        "token_version": 0,
        "disabled": False,
        "is_verified": True,
        "created_at": now,
        "updated_at": now
    }
    if dto.phone_number:
        user_doc["phone_number"] = dto.phone_number
    try:
        await mongo_conn.users_collection.insert_one(user_doc)
    except DuplicateKeyError:
        raise ConflictException("Email or phone number already in use")
    logger.info(f"Admin created: {dto.email}")
    return {"message": "Admin created successfully", "user": serialize_user(user_doc)}
