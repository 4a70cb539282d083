# app/api/routers/auth.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import (
    get_current_user,
    get_google_client,
    get_redis,
    get_token_payload,
    get_token_service,
)
from app.data.database import get_db
from app.data.models.user import UserModel
from app.domain.schemas import (
    AuthOut,
    GoogleLoginIn,
    LoginIn,
    MessageOut,
    OtpRequestIn,
    OtpVerifyIn,
    RegisterIn,
    UserOut,
    UserRead,
)
from app.services.auth_service import AuthService
from app.services.google_client import GoogleClient
from app.services.otp_service import OtpService
from app.services.token_service import TokenService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_service(
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    redis_client=Depends(get_redis),
    google: GoogleClient = Depends(get_google_client),
) -> AuthService:
    return AuthService(db, tokens=tokens, otp=OtpService(redis_client), google=google)


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterIn, svc: AuthService = Depends(get_service)):
    return AuthOut(message="User registered successfully", **svc.register(payload))


@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, svc: AuthService = Depends(get_service)):
    return AuthOut(message="Login successful", **svc.login(payload))


@router.post("/otp/request", response_model=MessageOut)
def request_otp(payload: OtpRequestIn, svc: AuthService = Depends(get_service)):
    svc.request_otp(payload.phone)
    return MessageOut(message="OTP sent")


@router.post("/otp/verify", response_model=AuthOut)
def verify_otp(payload: OtpVerifyIn, svc: AuthService = Depends(get_service)):
    return AuthOut(message="Login successful", **svc.verify_otp(payload.phone, payload.otp))


@router.post("/google", response_model=AuthOut)
def google_login(payload: GoogleLoginIn, svc: AuthService = Depends(get_service)):
    return AuthOut(message="Login successful", **svc.google_login(payload.id_token))


@router.post("/logout", response_model=MessageOut)
def logout(
    token_payload: dict = Depends(get_token_payload),
    svc: AuthService = Depends(get_service),
):
    svc.logout(token_payload)
    return MessageOut(message="Logged out")


@router.get("/me", response_model=UserOut)
def me(user: UserModel = Depends(get_current_user)):
    return UserOut(user=UserRead.model_validate(user))
