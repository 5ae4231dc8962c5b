"""Identity provider client: Supabase Auth (GoTrue) REST API over httpx.

Owns user accounts, password checks and session tokens. Calls that manage
other users (list, create, update) use the service key; token resolution
sends the caller's own access token.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# GoTrue admin listing page size; the listing stops at the first short page.
USERS_PAGE_SIZE = 1000
# Upper bound on pages walked when listing users.
MAX_USER_PAGES = 100


class IdentityProviderError(Exception):
    """Raised when the identity provider is unreachable or rejects a call."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class InvalidCredentialsError(IdentityProviderError):
    """Email/password sign-in was refused."""


class IdentityUser(BaseModel):
    """Account as seen by the identity provider."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("user_metadata", mode="before")
    @classmethod
    def null_metadata_is_empty(cls, v: Any) -> Any:
        # Accounts created outside the admin API carry "user_metadata": null.
        return {} if v is None else v

    @property
    def username(self) -> str | None:
        value = self.user_metadata.get("username")
        return value if isinstance(value, str) and value else None


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError):
        return resp.text[:500] if resp.text else "Unknown error"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])[:500]
    return json.dumps(body)[:500]


def _parse_user(data: Any) -> IdentityUser:
    try:
        return IdentityUser.model_validate(data)
    except ValidationError as e:
        raise IdentityProviderError("Identity provider returned a malformed user record.", cause=e) from e


class SupabaseIdentityProvider:
    """Stateless client; safe to share across requests."""

    def __init__(self, base_url: str, service_key: str, timeout: float = 15.0) -> None:
        self.base_url = base_url.rstrip("/")
        self._service_key = service_key
        self.timeout = timeout

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._service_key,
            "Authorization": f"Bearer {bearer or self._service_key}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        bearer: str | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/auth/v1{path}"
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                return await client.request(
                    method,
                    url,
                    headers=self._headers(bearer),
                    json=json_body,
                    params=params,
                )
        except httpx.TimeoutException as e:
            raise IdentityProviderError("Identity provider request timed out.", cause=e) from e
        except httpx.HTTPError as e:
            raise IdentityProviderError("Identity provider is unreachable.", cause=e) from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, action: str) -> None:
        if resp.status_code >= 400:
            raise IdentityProviderError(
                f"{action} failed with status {resp.status_code}: {_error_detail(resp)}",
                status_code=resp.status_code,
            )

    async def list_users(self) -> list[IdentityUser]:
        """Return every account, walking the admin listing page by page."""
        users: list[IdentityUser] = []
        for page in range(1, MAX_USER_PAGES + 1):
            resp = await self._request(
                "GET",
                "/admin/users",
                params={"page": page, "per_page": USERS_PAGE_SIZE},
            )
            self._raise_for_status(resp, "List users")
            batch = resp.json().get("users") or []
            users.extend(_parse_user(u) for u in batch)
            if len(batch) < USERS_PAGE_SIZE:
                break
        return users

    async def find_user_by_email(self, email: str) -> IdentityUser | None:
        target = email.strip().lower()
        for user in await self.list_users():
            if user.email and user.email.lower() == target:
                return user
        return None

    async def get_users_by_ids(self, user_ids: set[str]) -> dict[str, IdentityUser]:
        """Resolve many ids with a single listing instead of one call per id."""
        if not user_ids:
            return {}
        return {u.id: u for u in await self.list_users() if u.id in user_ids}

    async def create_user(self, email: str, password: str, username: str) -> IdentityUser:
        """Create a confirmed account with the username stored in user metadata."""
        resp = await self._request(
            "POST",
            "/admin/users",
            json_body={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"username": username},
            },
        )
        self._raise_for_status(resp, "Create user")
        user = _parse_user(resp.json())
        logger.info("Identity account created", extra={"user_id": user.id})
        return user

    async def update_password(self, user_id: str, password: str) -> None:
        resp = await self._request(
            "PUT",
            f"/admin/users/{user_id}",
            json_body={"password": password},
        )
        self._raise_for_status(resp, "Update password")

    async def update_password_by_email(self, email: str, password: str) -> None:
        user = await self.find_user_by_email(email)
        if user is None:
            raise IdentityProviderError(f"No account for {email}.", status_code=404)
        await self.update_password(user.id, password)

    async def generate_magic_link(self, email: str, redirect_to: str) -> str:
        """
        Create a one-time sign-in link for email without having the provider mail it.

        The link is delivered by our own mailer; after sign-in the user lands on redirect_to.
        """
        resp = await self._request(
            "POST",
            "/admin/generate_link",
            json_body={"type": "magiclink", "email": email, "redirect_to": redirect_to},
        )
        self._raise_for_status(resp, "Generate magic link")
        body = resp.json()
        # Newer servers put the link at top level, older ones under "properties".
        link = body.get("action_link") or (body.get("properties") or {}).get("action_link")
        if not link:
            raise IdentityProviderError("Identity provider returned no action_link.")
        return link

    async def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        """
        Exchange email/password for a session (access_token, refresh_token, user, ...).

        Raises InvalidCredentialsError when the provider refuses the credentials.
        """
        resp = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        if resp.status_code in (400, 401, 422):
            raise InvalidCredentialsError(_error_detail(resp), status_code=resp.status_code)
        self._raise_for_status(resp, "Password sign-in")
        return resp.json()

    async def get_user_for_token(self, access_token: str) -> IdentityUser | None:
        """Resolve a bearer token to its user; None when the token is invalid or expired."""
        resp = await self._request("GET", "/user", bearer=access_token)
        if resp.status_code in (401, 403, 404):
            return None
        self._raise_for_status(resp, "Resolve token")
        return _parse_user(resp.json())
