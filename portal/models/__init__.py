"""SQLAlchemy ORM models."""

from portal.models.base import Base
from portal.models.profile import Profile
from portal.models.ticket import Ticket
from portal.models.verification_code import VerificationCode
from portal.models.wiki import WikiArticle, WikiCategory

__all__ = ["Base", "Profile", "Ticket", "VerificationCode", "WikiArticle", "WikiCategory"]
