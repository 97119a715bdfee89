# scripts/seed_admin.py
import asyncio
import os
from datetime import datetime
from db.db_operation import mongo_conn, create_indexes
from models.user import Role
from utils.hash import hash_password

async def seed():
    await create_indexes()
    users = mongo_conn.users_collection
    # backfill fields older user documents may lack
    await users.update_many({"role": {"$exists": False}}, {"$set": {"role": Role.USER.value}})
    await users.update_many({"token_version": {"$exists": False}}, {"$set": {"token_version": 0}})

    admin_email = os.getenv("ADMIN_EMAIL", "admin@tablebooking.com")
    existing = await users.find_one({"email": admin_email})
    if not existing:
        now = datetime.utcnow()
        admin_doc = {
            "email": admin_email,
            "first_name": "Platform",
            "last_name": "Admin",
            "password": hash_password(os.getenv("ADMIN_PASSWORD", "Admin@123")),
            "role": Role.ADMIN.value,
            "token_version": 0,
            "disabled": False,
            "is_verified": True,
            "created_at": now,
            "updated_at": now
        }
        result = await users.insert_one(admin_doc)
        print("Created admin:", admin_email, result.inserted_id)
    else:
        print("Admin already exists")

if __name__ == "__main__":
    asyncio.run(seed())
