from datetime import datetime
from pymongo.errors import DuplicateKeyError
from db.db_operation import mongo_conn
from core.exceptions import ConflictException, NotFoundException, ValidationFailure
from utils.ids import parse_object_id
from utils.logger import get_logger

logger = get_logger("USER_SERVICE")

def serialize_user(user: dict) -> dict:
    # never exposes password, token_version or verification state
    return {
        "id": str(user["_id"]),
        "email": user.get("email"),
        "phone_number": user.get("phone_number"),
        "first_name": user.get("first_name"),
        "last_name": user.get("last_name"),
        "role": user.get("role", "USER"),
        "profile_image_url": user.get("profile_image_url"),
        "language": user.get("language"),
        "currency": user.get("currency"),
        "created_at": user.get("created_at"),
        "updated_at": user.get("updated_at")
    }

def summarize_user(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "first_name": user.get("first_name"),
        "last_name": user.get("last_name"),
        "phone_number": user.get("phone_number"),
        "email": user.get("email")
    }

async def get_user_doc(user_id: str) -> dict:
    oid = parse_object_id(user_id)
    user = await mongo_conn.users_collection.find_one({"_id": oid}) if oid else None
    if not user:
        logger.warning(f"User with ID {user_id} not found")
        raise NotFoundException(f"User with ID {user_id} not found")
    return user

async def find_by_destination(field: str, value: str):
    """User holding the given email or phone_number, or None."""
    return await mongo_conn.users_collection.find_one({field: value})

async def get_user(user_id: str):
    return serialize_user(await get_user_doc(user_id))

async def list_users(skip: int = 0, limit: int = 50):
    cursor = mongo_conn.users_collection.find({}, {"password": 0}).skip(skip).limit(limit)
    users = await cursor.to_list(length=limit)
    return [serialize_user(u) for u in users]

async def update_profile(user_id: str, payload):
    """
    Update the caller's own profile. Email is not part of the payload and
    never changes; a phone number may only belong to one account.
    """
    user = await get_user_doc(user_id)
    update_doc = {k: v for k, v in payload.model_dump().items() if v is not None}

    phone = update_doc.get("phone_number")
    if phone:
        existing = await mongo_conn.users_collection.find_one({"phone_number": phone})
        if existing and existing["_id"] != user["_id"]:
            raise ConflictException("Phone number already in use")

    update_doc["updated_at"] = datetime.utcnow()
    try:
        await mongo_conn.users_collection.update_one({"_id": user["_id"]}, {"$set": update_doc})
    except DuplicateKeyError:
        raise ConflictException("Phone number already in use")
    logger.info(f"Profile updated for user {user_id}", extra={"fields": sorted(update_doc)})
    return await get_user(user_id)

async def change_role(user_id: str, new_role: str, actor_id: str):
    """Change a user's role and bump token_version so old tokens stop working."""
    user = await get_user_doc(user_id)
    await mongo_conn.users_collection.update_one(
        {"_id": user["_id"]},
        {"$set": {"role": new_role, "updated_at": datetime.utcnow()}, "$inc": {"token_version": 1}}
    )
    logger.info(f"{actor_id} changed role of {user_id} -> {new_role}")
    return await get_user(user_id)

async def delete_user(lookup_type: str, identifier: str):
    if lookup_type == "id":
        user = await get_user_doc(identifier)
    elif lookup_type == "email":
        user = await mongo_conn.users_collection.find_one({"email": identifier})
        if not user:
            raise NotFoundException(f"User with email {identifier} not found")
    else:
        raise ValidationFailure("Lookup type must be 'id' or 'email'")

    await mongo_conn.users_collection.delete_one({"_id": user["_id"]})
    await mongo_conn.refresh_tokens_collection.delete_many({"user_id": str(user["_id"])})
    logger.info(f"User {user['_id']} deleted")
    return {"message": "User deleted successfully"}
