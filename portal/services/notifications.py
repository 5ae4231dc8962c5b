"""Email bodies for the messages users receive, and helpers that send them."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from portal.core.config import Settings
    from portal.services.mailer import ResendMailer


def signup_code_email(code: str) -> tuple[str, str]:
    subject = f"您的 TribitHub 注册验证码是 {code}"
    html = f"<p>你好, 这是您的验证码: <strong>{code}</strong></p>"
    return subject, html


def password_reset_code_email(code: str) -> tuple[str, str]:
    subject = f"您的密码重置验证码是 {code}"
    html = f"<p>你好, 这是您的密码重置验证码: <strong>{code}</strong></p>"
    return subject, html


def ticket_received_email(ticket_id: int, username: str | None) -> tuple[str, str]:
    subject = f"您的工单 #{ticket_id} 已收到"
    html = f"<p>你好 {escape(username or '')}, 您的工单已提交成功。</p>"
    return subject, html


def magic_link_email(link: str) -> tuple[str, str]:
    subject = "您的 TribitHub 登录链接"
    html = (
        "<h2>欢迎登录 TribitHub</h2>"
        "<p>请点击下面的链接以安全登录。该链接将在 15 分钟后失效。</p>"
        f'<p><a href="{escape(link, quote=True)}">安全登录</a></p>'
        "<p>如果您没有请求登录，请忽略此邮件。</p>"
    )
    return subject, html


async def send_signup_code(mailer: "ResendMailer", settings: "Settings", email: str, code: str) -> None:
    subject, html = signup_code_email(code)
    await mailer.send(email, subject, html, sender=settings.MAIL_FROM)


async def send_password_reset_code(
    mailer: "ResendMailer", settings: "Settings", email: str, code: str
) -> None:
    subject, html = password_reset_code_email(code)
    await mailer.send(email, subject, html, sender=settings.MAIL_FROM_SECURITY)


async def send_ticket_received(
    mailer: "ResendMailer",
    settings: "Settings",
    email: str,
    ticket_id: int,
    username: str | None,
) -> None:
    subject, html = ticket_received_email(ticket_id, username)
    await mailer.send(email, subject, html, sender=settings.MAIL_FROM_SUPPORT)


async def send_magic_link(mailer: "ResendMailer", settings: "Settings", email: str, link: str) -> None:
    subject, html = magic_link_email(link)
    await mailer.send(email, subject, html, sender=settings.MAIL_FROM)
