"""ORM model for user profiles keyed by the identity provider's user id."""

from sqlalchemy import Column, String

from portal.models.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Profile(Base):
    """
    Application-side profile for an identity-provider account.

    role: 'admin' or 'user'. Changed only through the set_role script.
    """

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    username = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_USER, server_default=ROLE_USER)
