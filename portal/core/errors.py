"""Error taxonomy shared by routes and services.

Every error carries the HTTP status it maps to and a user-facing (localized)
message. The app-level handlers in ``portal.main`` render them as
``{"error": message}``.
"""

from fastapi import status


class PortalError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "服务器内部错误"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(PortalError):
    """Missing or invalid request input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "请求参数无效"


class UnauthenticatedError(PortalError):
    """Missing, malformed or unresolvable credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "未提供认证令牌"


class ForbiddenError(PortalError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "权限不足"


class NotFoundError(PortalError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "资源未找到"


class DuplicateAccountError(PortalError):
    """An account already exists for the email being registered."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "该邮箱已被注册"


class InvalidOrExpiredCodeError(PortalError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "验证码无效或已过期"


class InternalServiceError(PortalError):
    """Downstream service failure surfaced to the caller as a generic 500."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ServiceNotConfiguredError(PortalError):
    """Raised when a provider is used but its settings are missing."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "服务暂不可用"
