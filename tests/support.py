"""Shared fixtures for tests: in-memory database and fake provider clients."""

from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portal.models import Base
from portal.services.identity import IdentityUser, InvalidCredentialsError
from portal.services.mailer import MailerError


def make_session_factory() -> sessionmaker:
    """One shared in-memory SQLite database per factory (usable from TestClient threads)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@contextmanager
def session_scope(factory: sessionmaker):
    db: Session = factory()
    try:
        yield db
    finally:
        db.close()


def identity_user(user_id: str, email: str | None = None, username: str | None = None) -> IdentityUser:
    metadata = {"username": username} if username else {}
    return IdentityUser(id=user_id, email=email, user_metadata=metadata)


class FakeIdentityProvider:
    """In-memory identity provider: users by id, tokens mapped to users, passwords by email."""

    def __init__(self, users: list[IdentityUser] | None = None) -> None:
        self.users: dict[str, IdentityUser] = {u.id: u for u in users or []}
        self.tokens: dict[str, str] = {}
        self.passwords: dict[str, str] = {}
        self.get_users_by_ids_calls = 0
        self.magic_links: list[tuple[str, str]] = []

    def add_user(self, user: IdentityUser, token: str | None = None, password: str | None = None) -> None:
        self.users[user.id] = user
        if token:
            self.tokens[token] = user.id
        if password and user.email:
            self.passwords[user.email] = password

    async def find_user_by_email(self, email: str) -> IdentityUser | None:
        for user in self.users.values():
            if user.email and user.email.lower() == email.lower():
                return user
        return None

    async def get_users_by_ids(self, user_ids: set[str]) -> dict[str, IdentityUser]:
        self.get_users_by_ids_calls += 1
        return {uid: self.users[uid] for uid in user_ids if uid in self.users}

    async def create_user(self, email: str, password: str, username: str) -> IdentityUser:
        user = identity_user(f"user-{len(self.users) + 1}", email, username)
        self.add_user(user, password=password)
        return user

    async def update_password_by_email(self, email: str, password: str) -> None:
        self.passwords[email] = password

    async def generate_magic_link(self, email: str, redirect_to: str) -> str:
        self.magic_links.append((email, redirect_to))
        return f"https://auth.example.com/verify?token=ml-{len(self.magic_links)}&redirect_to={redirect_to}"

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        if self.passwords.get(email) != password:
            raise InvalidCredentialsError("Invalid login credentials", status_code=400)
        user = await self.find_user_by_email(email)
        token = f"token-{user.id}"
        self.tokens[token] = user.id
        return {
            "access_token": token,
            "token_type": "bearer",
            "refresh_token": "refresh",
            "user": {"id": user.id, "email": user.email},
        }

    async def get_user_for_token(self, access_token: str) -> IdentityUser | None:
        user_id = self.tokens.get(access_token)
        return self.users.get(user_id) if user_id else None


class FakeMailer:
    """Records sent emails; raises MailerError when fail is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send(self, to: str, subject: str, html: str, sender: str | None = None) -> str | None:
        if self.fail:
            raise MailerError("Email provider returned 500: boom", status_code=500)
        self.sent.append({"to": to, "subject": subject, "html": html, "sender": sender})
        return f"msg-{len(self.sent)}"
