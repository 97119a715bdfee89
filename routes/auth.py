from fastapi import APIRouter, Depends, HTTPException, status
from pymongo.errors import PyMongoError
from core.authorization import require_role
from core.dependencies import get_current_user, CurrentUser
from models.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ConfirmForgotPasswordRequest,
    CreateAdminRequest,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    SendVerificationRequest,
    SessionOut,
    TokenPair,
    VerifyAndRegisterRequest,
)
from models.user import Role
from services import auth_service
from services.user_service import get_user
from utils.logger import get_logger

logger = get_logger("AUTH_ROUTE")

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/send-verification", response_model=MessageResponse)
async def send_verification(payload: SendVerificationRequest):
    logger.info(f"Verification code requested for: {payload.destination}")
    return await auth_service.send_verification_code(payload)

@router.post("/verify-and-register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def verify_and_register(payload: VerifyAndRegisterRequest):
    logger.info(f"Attempting to register user with {payload.field}: {payload.destination}")
    try:
        return await auth_service.verify_and_register(payload)
    except PyMongoError as e:
        logger.error(f"Database error during registration: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")

@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest):
    logger.info(f"Login attempt for: {payload.destination}")
    return await auth_service.login(payload)

@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(payload: RefreshTokenRequest):
    return await auth_service.refresh_tokens(payload.refresh_token)

@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: CurrentUser = Depends(get_current_user)):
    return await auth_service.logout(current_user.id)

@router.get("/session", response_model=SessionOut)
async def session(current_user: CurrentUser = Depends(get_current_user)):
    return {"user": await get_user(current_user.id)}

@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordRequest):
    return await auth_service.forgot_password(payload)

@router.post("/confirm-forgot-password", response_model=MessageResponse)
async def confirm_forgot_password(payload: ConfirmForgotPasswordRequest):
    return await auth_service.confirm_forgot_password(payload)

@router.post("/change-password", response_model=MessageResponse)
async def change_password(payload: ChangePasswordRequest, current_user: CurrentUser = Depends(get_current_user)):
    return await auth_service.change_password(current_user.id, payload)

@router.post(
    "/create-admin",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(Role.ADMIN))]
)
async def create_admin(payload: CreateAdminRequest):
    """Create another ADMIN account (admins only)"""
    return await auth_service.create_admin(payload)
