from sqlalchemy.orm import Session
from datetime import datetime, timedelta
import logging

from ..models.user import User, RefreshToken
from ..core.config import settings
from ..core.exceptions import (
    AccountLockedError, AuthenticationError, BadRequestError, ConflictError
)
from ..core.security import (
    verify_password, get_password_hash, create_token_pair,
    verify_token, hash_token, UserRole
)
from ..schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse,
    ProfileUpdate, ChangePassword
)

logger = logging.getLogger(__name__)

DOCTOR_FIELDS = ("specialization", "license_number", "experience")
PATIENT_FIELDS = ("age", "gender", "address", "emergency_contact")

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> TokenResponse:
        """Register a new user and sign them in."""
        email = user_data.email.lower()
        if self.db.query(User).filter(User.email == email).first():
            raise ConflictError("User already exists with this email")

        role_fields = DOCTOR_FIELDS if user_data.role == UserRole.DOCTOR else PATIENT_FIELDS
        profile = user_data.model_dump(include=set(role_fields), exclude_none=True)

        new_user = User(
            name=user_data.name,
            email=email,
            password_hash=get_password_hash(user_data.password),
            role=user_data.role,
            phone=user_data.phone,
            is_active=True,
            **profile
        )

        self.db.add(new_user)
        self.db.commit()
        self.db.refresh(new_user)
        logger.info(f"Registered {new_user.role.value} {new_user.id}")

        return self._issue_tokens(new_user, message="User registered successfully")

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate user and return tokens."""
        user = self.db.query(User).filter(
            User.email == login_data.email.lower()
        ).first()

        if not user:
            raise AuthenticationError("Invalid email or password")

        if user.locked_until:
            if user.locked_until > datetime.utcnow():
                raise AccountLockedError()
            # Lock expired, start counting consecutive failures again
            user.failed_login_attempts = 0
            user.locked_until = None

        if not verify_password(login_data.password, user.password_hash):
            self._handle_failed_login(user)
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login = datetime.utcnow()

        return self._issue_tokens(user, message="Login successful")

    def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Rotate a refresh token into a new token pair."""
        token_payload = verify_token(refresh_token)
        if not token_payload or token_payload.token_type != "refresh":
            raise AuthenticationError("Invalid refresh token")

        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.is_revoked == False,  # noqa: E712
            RefreshToken.expires_at > datetime.utcnow()
        ).first()

        if not stored_token:
            raise AuthenticationError("Invalid or expired refresh token")

        user = self.db.query(User).filter(User.id == token_payload.sub).first()
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return self._issue_tokens(user)

    def logout_user(self, refresh_token: str) -> bool:
        """Revoke a refresh token. Returns False if it was unknown."""
        stored_token = self.db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token)
        ).first()

        if not stored_token:
            return False

        stored_token.is_revoked = True
        self.db.commit()
        return True

    def update_profile(self, user: User, profile_data: ProfileUpdate) -> User:
        """Apply the supplied common fields and those of the user's own role."""
        role_fields = DOCTOR_FIELDS if user.role == UserRole.DOCTOR else PATIENT_FIELDS
        changes = profile_data.model_dump(
            include={"name", "phone", *role_fields}, exclude_none=True
        )
        for field, value in changes.items():
            setattr(user, field, value)

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Updated profile of user {user.id}: {sorted(changes)}")
        return user

    def change_password(self, user: User, password_data: ChangePassword):
        if not verify_password(password_data.current_password, user.password_hash):
            raise BadRequestError("Current password is incorrect")

        user.password_hash = get_password_hash(password_data.new_password)
        self._revoke_refresh_tokens(user.id)
        self.db.commit()

    def _issue_tokens(self, user: User, message: str = None) -> TokenResponse:
        tokens = create_token_pair(user.id, user.email, user.role)
        self._store_refresh_token(user.id, tokens.refresh_token)
        self.db.commit()
        self.db.refresh(user)

        return TokenResponse(
            message=message,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserResponse.model_validate(user)
        )

    def _handle_failed_login(self, user: User):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= settings.MAX_FAILED_LOGINS:
            user.locked_until = datetime.utcnow() + timedelta(minutes=settings.LOCKOUT_MINUTES)
            logger.warning(f"Locked account of user {user.id} after repeated failed logins")

        self.db.commit()

    def _revoke_refresh_tokens(self, user_id: int):
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).update({"is_revoked": True})

    def _store_refresh_token(self, user_id: int, refresh_token: str):
        """Keep only the newest refresh token of a user valid."""
        token_payload = verify_token(refresh_token)
        if token_payload and token_payload.exp:
            expires_at = datetime.utcfromtimestamp(token_payload.exp)
        else:
            expires_at = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

        self._revoke_refresh_tokens(user_id)
        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(refresh_token),
            expires_at=expires_at
        ))
