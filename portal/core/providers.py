"""FastAPI dependencies for the external provider clients.

Each client is built once from settings and reused for the process lifetime.
Tests replace them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from portal.core.config import Settings, get_settings
from portal.core.errors import ServiceNotConfiguredError
from portal.services.identity import SupabaseIdentityProvider
from portal.services.mailer import ResendMailer
from portal.services.storage import S3ImageStorage


def identity_configured(settings: Settings) -> bool:
    return bool(settings.SUPABASE_URL) and settings.SUPABASE_SERVICE_KEY is not None and bool(
        settings.SUPABASE_SERVICE_KEY.get_secret_value().strip()
    )


def mailer_configured(settings: Settings) -> bool:
    return settings.RESEND_API_KEY is not None and bool(
        settings.RESEND_API_KEY.get_secret_value().strip()
    )


def storage_configured(settings: Settings) -> bool:
    return (
        bool(settings.S3_ENDPOINT)
        and bool(settings.S3_BUCKET_NAME)
        and bool(settings.S3_ACCESS_KEY_ID)
        and settings.S3_SECRET_ACCESS_KEY is not None
    )


def provider_status(settings: Settings) -> dict[str, bool]:
    return {
        "identity": identity_configured(settings),
        "email": mailer_configured(settings),
        "storage": storage_configured(settings),
    }


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    settings = get_settings()
    if not identity_configured(settings):
        raise ServiceNotConfiguredError("身份认证服务未配置")
    return SupabaseIdentityProvider(
        base_url=settings.SUPABASE_URL,
        service_key=settings.SUPABASE_SERVICE_KEY.get_secret_value(),
        timeout=settings.PROVIDER_REQUEST_TIMEOUT_SEC,
    )


@lru_cache
def get_mailer() -> ResendMailer:
    settings = get_settings()
    if not mailer_configured(settings):
        raise ServiceNotConfiguredError("邮件服务未配置")
    return ResendMailer(
        api_key=settings.RESEND_API_KEY.get_secret_value(),
        default_sender=settings.MAIL_FROM,
        base_url=settings.RESEND_API_URL,
        timeout=settings.PROVIDER_REQUEST_TIMEOUT_SEC,
    )


@lru_cache
def get_image_storage() -> S3ImageStorage:
    settings = get_settings()
    if not storage_configured(settings):
        raise ServiceNotConfiguredError("对象存储服务未配置")
    return S3ImageStorage(
        endpoint=settings.S3_ENDPOINT,
        bucket_name=settings.S3_BUCKET_NAME,
        access_key_id=settings.S3_ACCESS_KEY_ID,
        secret_access_key=settings.S3_SECRET_ACCESS_KEY.get_secret_value(),
        region=settings.S3_REGION,
    )
