import secrets
import uuid

VERIFICATION_CODE_LENGTH = 6

def generate_refresh_token() -> str:
    """
    Opaque refresh token. Only its presence in refresh_tokens gives it meaning.
    """
    return str(uuid.uuid4())

def generate_verification_code() -> str:
    """
    Six digit numeric code, never starting with zero
    """
    return str(100_000 + secrets.randbelow(900_000))
