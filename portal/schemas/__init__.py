"""Pydantic request/response schemas."""

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
from portal.schemas.health import HealthResponse
from portal.schemas.ticket import TicketCreate, TicketOut, TicketSubmitResponse, TicketWithOwner
from portal.schemas.wiki import (
    AdminArticleListItem,
    ArticleDetail,
    ArticleInput,
    ArticleOut,
    CategoryCreate,
    CategoryOut,
    ImageUploadResponse,
    WikiIndexCategory,
)

__all__ = [
    "AdminArticleListItem",
    "AdminTokenResponse",
    "ArticleDetail",
    "ArticleInput",
    "ArticleOut",
    "CategoryCreate",
    "CategoryOut",
    "HealthResponse",
    "ImageUploadResponse",
    "LoginRequest",
    "MagicLinkRequest",
    "MessageResponse",
    "PasswordResetRequest",
    "RegisterRequest",
    "SendCodeRequest",
    "SendResetCodeRequest",
    "SessionResponse",
    "TicketCreate",
    "TicketOut",
    "TicketSubmitResponse",
    "TicketWithOwner",
    "WikiIndexCategory",
]
