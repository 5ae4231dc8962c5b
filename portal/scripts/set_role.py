"""
Set a user's role (the only way to promote an admin). Run from project root:
  python -m portal.scripts.set_role USER_ID_OR_EMAIL ROLE [--username NAME]
Example:
  python -m portal.scripts.set_role admin@example.com admin
"""
import argparse
import asyncio
import sys

from portal.core.config import get_settings
from portal.core.database import session_scope
from portal.core.providers import identity_configured
from portal.models import Profile
from portal.models.profile import ROLE_ADMIN, ROLE_USER
from portal.services.identity import IdentityProviderError, SupabaseIdentityProvider


def _resolve_user_id(target: str) -> tuple[str, str | None]:
    """Return (user_id, username from metadata); emails are looked up at the identity provider."""
    if "@" not in target:
        return target, None
    settings = get_settings()
    if not identity_configured(settings):
        raise IdentityProviderError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set to look up an email.")
    identity = SupabaseIdentityProvider(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY.get_secret_value(),
        settings.PROVIDER_REQUEST_TIMEOUT_SEC,
    )
    user = asyncio.run(identity.find_user_by_email(target))
    if user is None:
        raise IdentityProviderError(f"No account for {target}.", status_code=404)
    return user.id, user.username


def main() -> int:
    parser = argparse.ArgumentParser(description="Set the role of a TribitHub user profile.")
    parser.add_argument("user", help="Identity-provider user id or account email")
    parser.add_argument("role", choices=[ROLE_USER, ROLE_ADMIN])
    parser.add_argument("--username", help="Username to use if the profile must be created")
    args = parser.parse_args()

    try:
        user_id, metadata_username = _resolve_user_id(args.user.strip())
    except IdentityProviderError as e:
        print(e.message, file=sys.stderr)
        return 1

    with session_scope() as db:
        profile = db.get(Profile, user_id)
        if profile is None:
            username = (args.username or metadata_username or "").strip()
            if not username:
                print(
                    f"No profile for '{user_id}'; pass --username to create one.",
                    file=sys.stderr,
                )
                return 1
            profile = Profile(id=user_id, username=username, role=args.role)
            db.add(profile)
        else:
            profile.role = args.role
        db.commit()
    print(f"Profile '{user_id}' now has role '{args.role}'.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
