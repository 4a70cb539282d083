# app/services/auth_service.py
from typing import Any, Dict

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.data.models.user import UserModel
from app.domain.errors import ConflictError, Forbidden, Unauthenticated
from app.domain.schemas import LoginIn, RegisterIn, UserRead
from app.repos.user_repo import UserRepo
from app.services.google_client import GoogleClient
from app.services.notification_service import NotificationService
from app.services.otp_service import OtpService
from app.services.token_service import TokenService
from app.utils.settings import OTP_TTL_SECONDS, PASSWORD_SCHEMES
from app.utils.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=PASSWORD_SCHEMES, deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


class AuthService:
    """
    Sign-in flows: email/password, phone OTP, Google.
    Every successful flow returns {"token", "user"}.
    """

    def __init__(
        self,
        db: Session,
        tokens: TokenService,
        otp: OtpService | None = None,
        google: GoogleClient | None = None,
        notifications: NotificationService | None = None,
    ):
        self.repo = UserRepo(db)
        self.db = db
        self.tokens = tokens
        self.otp = otp
        self.google = google
        self.notifications = notifications or NotificationService()

    def _session(self, user: UserModel) -> Dict[str, Any]:
        return {"token": self.tokens.issue(user), "user": UserRead.model_validate(user)}

    @staticmethod
    def _ensure_active(user: UserModel) -> None:
        if user.status != "active":
            raise Forbidden("Your account is not active")

    def _create(self, user: UserModel) -> UserModel:
        try:
            return self.repo.create_user(user)
        except IntegrityError:
            # lost a race on a unique column
            self.db.rollback()
            raise ConflictError("User already exists")

    # =====================================================
    # EMAIL / PASSWORD
    # =====================================================
    def register(self, payload: RegisterIn) -> Dict[str, Any]:
        email = payload.email.lower()

        if self.repo.get_by_email(email):
            raise ConflictError("User with this email already exists")
        if self.repo.get_by_phone(payload.phone):
            raise ConflictError("User with this phone already exists")

        user = self._create(
            UserModel(
                name=f"{payload.first_name} {payload.last_name}",
                email=email,
                phone=payload.phone,
                password_hash=hash_password(payload.password),
                role="user",
                status="active",
            )
        )
        logger.info(f"User {user.id} registered ({email})")

        try:
            self.notifications.send_welcome_email(user.email, user.name)
        except Exception as e:
            logger.warning(f"Welcome mail for user {user.id} not queued: {e}")

        return self._session(user)

    def login(self, payload: LoginIn) -> Dict[str, Any]:
        user = self.repo.get_by_email(payload.email)
        if not user:
            raise Unauthenticated("Invalid email or password")

        self._ensure_active(user)

        if not verify_password(payload.password, user.password_hash):
            logger.warning(f"Failed login for user {user.id}")
            raise Unauthenticated("Invalid email or password")

        return self._session(user)

    # =====================================================
    # PHONE OTP
    # =====================================================
    def request_otp(self, phone: str) -> None:
        code = self.otp.issue(phone)
        self.notifications.send_otp(phone, code, OTP_TTL_SECONDS // 60)

    def verify_otp(self, phone: str, code: str) -> Dict[str, Any]:
        self.otp.verify(phone, code)

        user = self.repo.get_by_phone(phone)
        if user is None:
            user = self._create(UserModel(phone=phone, is_phone_verified=True))
            logger.info(f"User {user.id} created from phone login")
        else:
            self._ensure_active(user)
            if not user.is_phone_verified:
                user.is_phone_verified = True
                user = self.repo.save(user)

        return self._session(user)

    # =====================================================
    # GOOGLE
    # =====================================================
    def google_login(self, id_token: str) -> Dict[str, Any]:
        info = self.google.verify_id_token(id_token)

        user = self.repo.get_by_google_id(info["google_id"])
        if user is None:
            user = self.repo.get_by_email(info["email"])
            if user is not None:
                logger.info(f"Linking Google account to user {user.id}")
                user.google_id = info["google_id"]
                user.is_email_verified = True
                user = self.repo.save(user)
            else:
                user = self._create(
                    UserModel(
                        name=info.get("name"),
                        email=info["email"],
                        google_id=info["google_id"],
                        is_email_verified=True,
                    )
                )
                logger.info(f"User {user.id} created from Google login")

        self._ensure_active(user)
        return self._session(user)

    # =====================================================
    # SESSION
    # =====================================================
    def logout(self, token_payload: dict) -> None:
        self.tokens.revoke(token_payload)

    def current_user(self, user_id: int) -> UserModel:
        user = self.repo.get_user(user_id)
        if user is None:
            raise Unauthenticated("User not found")
        self._ensure_active(user)
        return user
