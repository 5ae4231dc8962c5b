"""Registration, password reset and login routes, plus the auth dependencies
(get_current_identity, require_admin) used by protected routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from portal.core.config import get_settings
from portal.core.database import get_db
from portal.core.errors import (
    ForbiddenError,
    InputValidationError,
    InternalServiceError,
    UnauthenticatedError,
)
from portal.core.providers import get_identity_provider, get_mailer
from portal.models import Profile
from portal.models.profile import ROLE_ADMIN, ROLE_USER
from portal.models.verification_code import PURPOSE_PASSWORD_RESET, PURPOSE_SIGNUP
from portal.schemas.auth import (
    AdminTokenResponse,
    LoginRequest,
    MagicLinkRequest,
    MessageResponse,
    PasswordResetRequest,
    RegisterRequest,
    SendCodeRequest,
    SendResetCodeRequest,
    SessionResponse,
)
from portal.services import notifications, verification
from portal.services.identity import (
    IdentityProviderError,
    IdentityUser,
    InvalidCredentialsError,
    SupabaseIdentityProvider,
)
from portal.services.mailer import MailerError, ResendMailer

logger = logging.getLogger(__name__)

router = APIRouter()
# Admin console login is served outside the /api prefix.
root_router = APIRouter()
security = HTTPBearer(auto_error=False)

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
USERNAME_MAX_LEN = 255


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _validate_password(password: str) -> None:
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise InputValidationError(
            f"密码长度需为 {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} 个字符"
        )


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> IdentityUser:
    """Dependency: resolve the Bearer token to a user. Raises 401 if missing or invalid."""
    if credentials is None or not credentials.credentials.strip():
        raise UnauthenticatedError("未提供认证令牌")
    try:
        user = await identity.get_user_for_token(credentials.credentials.strip())
    except IdentityProviderError as e:
        logger.exception("Token resolution failed: %s", e.message)
        raise InternalServiceError() from e
    if user is None:
        raise UnauthenticatedError("无效的令牌")
    return user


def require_admin(
    current_user: Annotated[IdentityUser, Depends(get_current_identity)],
    db: Annotated[Session, Depends(get_db)],
) -> IdentityUser:
    """Dependency: require a resolved user whose profile role is 'admin'. Raises 403 otherwise."""
    profile = db.get(Profile, current_user.id)
    if profile is None or profile.role != ROLE_ADMIN:
        raise ForbiddenError("权限不足")
    return current_user


@router.post("/send-code", response_model=MessageResponse)
async def send_code(
    body: SendCodeRequest,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
    mailer: Annotated[ResendMailer, Depends(get_mailer)],
) -> MessageResponse:
    """Email a signup verification code. 400 if the email is already registered."""
    email, username = _clean(body.email), _clean(body.username)
    if not email or not username:
        raise InputValidationError("邮箱和用户名为必填项")
    try:
        await verification.issue_signup_code(db, identity, mailer, get_settings(), email)
    except (IdentityProviderError, MailerError) as e:
        logger.exception("/api/send-code failed: %s", e.message)
        raise InternalServiceError("发送验证码失败") from e
    return MessageResponse(message="验证码已成功发送至您的邮箱！")


@router.post("/register", response_model=MessageResponse)
async def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> MessageResponse:
    """Redeem a signup code and create the account with a 'user' profile."""
    username, email = _clean(body.username), _clean(body.email)
    code, password = _clean(body.code), body.password or ""
    if not username or not email or not code or not password:
        raise InputValidationError("所有字段均为必填项")
    if len(username) > USERNAME_MAX_LEN:
        raise InputValidationError("用户名过长")
    _validate_password(password)

    async def create_account() -> IdentityUser:
        user = await identity.create_user(email, password, username)
        # merge: the profile row may already exist if the database creates it on signup
        db.merge(Profile(id=user.id, username=username, role=ROLE_USER))
        return user

    try:
        await verification.redeem_code(db, email, PURPOSE_SIGNUP, code, create_account)
    except IdentityProviderError as e:
        logger.exception("/api/register failed: %s", e.message)
        raise InternalServiceError("注册失败") from e
    return MessageResponse(message="注册成功！")


@router.post("/password/send-reset-code", response_model=MessageResponse)
async def send_reset_code(
    body: SendResetCodeRequest,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
    mailer: Annotated[ResendMailer, Depends(get_mailer)],
) -> MessageResponse:
    """Email a reset code when the account exists. The answer never reveals whether it does."""
    email = _clean(body.email)
    if not email:
        raise InputValidationError("邮箱不能为空")
    try:
        await verification.issue_password_reset_code(db, identity, mailer, get_settings(), email)
    except (IdentityProviderError, MailerError) as e:
        logger.exception("/api/password/send-reset-code failed: %s", e.message)
        raise InternalServiceError("发送验证码失败") from e
    return MessageResponse(message="如果您的邮箱已注册，您将会收到一封包含验证码的邮件。")


@router.post("/password/reset", response_model=MessageResponse)
async def reset_password(
    body: PasswordResetRequest,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> MessageResponse:
    email, code, new_password = _clean(body.email), _clean(body.code), body.newPassword or ""
    if not email or not code or not new_password:
        raise InputValidationError("所有字段均为必填项")
    _validate_password(new_password)
    try:
        await verification.redeem_code(
            db,
            email,
            PURPOSE_PASSWORD_RESET,
            code,
            lambda: identity.update_password_by_email(email, new_password),
        )
    except IdentityProviderError as e:
        logger.exception("/api/password/reset failed: %s", e.message)
        raise InternalServiceError("密码重置失败") from e
    return MessageResponse(message="密码重置成功！您现在可以使用新密码登录了。")


@router.post("/auth", response_model=MessageResponse)
async def send_magic_link(
    body: MagicLinkRequest,
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
    mailer: Annotated[ResendMailer, Depends(get_mailer)],
) -> MessageResponse:
    """Email a one-time sign-in link that lands on the dashboard."""
    email = _clean(body.email)
    if not email:
        raise InputValidationError("邮箱不能为空")
    settings = get_settings()
    try:
        link = await identity.generate_magic_link(email, f"{settings.SITE_URL}/dashboard.html")
        await notifications.send_magic_link(mailer, settings, email, link)
    except (IdentityProviderError, MailerError) as e:
        logger.exception("/api/auth failed: %s", e.message)
        raise InternalServiceError("发送邮件时发生内部错误。") from e
    return MessageResponse(message="登录链接已发送，请检查您的邮箱。")


@router.post("/login/password", response_model=SessionResponse)
async def login_password(
    body: LoginRequest,
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> SessionResponse:
    """Password login; returns the identity provider's session."""
    email, password = _clean(body.email), body.password or ""
    if not email or not password:
        raise InputValidationError("邮箱和密码不能为空")
    try:
        session = await identity.sign_in_with_password(email, password)
    except InvalidCredentialsError as e:
        raise UnauthenticatedError("邮箱或密码不正确") from e
    except IdentityProviderError as e:
        logger.exception("/api/login/password failed: %s", e.message)
        raise InternalServiceError() from e
    return SessionResponse(message="登录成功", session=session)


@root_router.post("/login", response_model=AdminTokenResponse)
async def admin_login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    identity: Annotated[SupabaseIdentityProvider, Depends(get_identity_provider)],
) -> AdminTokenResponse:
    """Admin console login: password sign-in, then require the 'admin' role."""
    email, password = _clean(body.email), body.password or ""
    if not email or not password:
        raise InputValidationError("邮箱和密码不能为空")
    try:
        session = await identity.sign_in_with_password(email, password)
    except InvalidCredentialsError as e:
        raise UnauthenticatedError("邮箱或密码不正确") from e
    except IdentityProviderError as e:
        logger.exception("/login failed: %s", e.message)
        raise InternalServiceError("管理员登录失败") from e

    user_id = (session.get("user") or {}).get("id")
    access_token = session.get("access_token")
    if not user_id or not access_token:
        raise UnauthenticatedError("邮箱或密码不正确")
    profile = db.get(Profile, user_id)
    if profile is None or profile.role != ROLE_ADMIN:
        raise ForbiddenError("权限不足")
    logger.info("Admin login", extra={"user_id": user_id})
    return AdminTokenResponse(message="管理员登录成功", accessToken=access_token)
