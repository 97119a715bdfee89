from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional
from models.user import PHONE_PATTERN, UserOut

class DestinationIn(BaseModel):
    """Exactly one of email / phone_number identifies where codes go."""
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @model_validator(mode="after")
    def one_destination(self):
        if bool(self.email) == bool(self.phone_number):
            raise ValueError("Provide either email or phone_number")
        return self

    @property
    def destination(self) -> str:
        return self.email or self.phone_number

    @property
    def field(self) -> str:
        return "email" if self.email else "phone_number"

class SendVerificationRequest(DestinationIn):
    pass

class VerifyAndRegisterRequest(DestinationIn):
    code: str = Field(..., pattern=r"^\d{6}$")
    first_name: str = Field(..., min_length=1)
    last_name: Optional[str] = None
    password: str = Field(..., min_length=6, max_length=100)

class LoginRequest(DestinationIn):
    password: str = Field(..., min_length=1)

class RefreshTokenRequest(BaseModel):
    refresh_token: str

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=100)

class ForgotPasswordRequest(DestinationIn):
    pass

class ConfirmForgotPasswordRequest(DestinationIn):
    code: str = Field(..., pattern=r"^\d{6}$")
    new_password: str = Field(..., min_length=6, max_length=100)

class CreateAdminRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str
    last_name: Optional[str] = None
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class AuthResponse(TokenPair):
    user: UserOut

class SessionOut(BaseModel):
    user: UserOut

class MessageResponse(BaseModel):
    message: str
