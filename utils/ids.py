from bson import ObjectId
from bson.errors import InvalidId

def parse_object_id(value):
    """ObjectId for a client supplied id string, or None when it is not one."""
    # ObjectId(None) would mint a fresh id
    if value is None:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None
