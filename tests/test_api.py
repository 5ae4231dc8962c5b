"""Route tests through the FastAPI app with in-memory database and fake providers."""

import unittest
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from portal.core.database import get_db
from portal.core.providers import get_identity_provider, get_image_storage, get_mailer
from portal.main import app
from portal.models import Profile, Ticket, VerificationCode, WikiArticle, WikiCategory
from portal.models.verification_code import PURPOSE_PASSWORD_RESET, PURPOSE_SIGNUP
from portal.services.storage import StorageError
from tests.support import (
    FakeIdentityProvider,
    FakeMailer,
    identity_user,
    make_session_factory,
    session_scope,
)

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"
NO_PROFILE_TOKEN = "no-profile-token"


class _ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.sessions = make_session_factory()
        self.identity = FakeIdentityProvider()
        self.identity.add_user(identity_user("admin-1", "admin@example.com", "root"), ADMIN_TOKEN, "admin-pass")
        self.identity.add_user(identity_user("user-1", "user@example.com", "alice"), USER_TOKEN, "user-pass")
        self.identity.add_user(identity_user("user-2", "ghost@example.com"), NO_PROFILE_TOKEN)
        self.mailer = FakeMailer()
        self.storage = MagicMock()
        self.storage.upload_public = AsyncMock(return_value="https://s3.example.com/bucket/wiki-images/x.png")
        with session_scope(self.sessions) as db:
            db.add_all([
                Profile(id="admin-1", username="root", role="admin"),
                Profile(id="user-1", username="alice", role="user"),
            ])
            db.commit()

        def override_db():
            db = self.sessions()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_identity_provider] = lambda: self.identity
        app.dependency_overrides[get_mailer] = lambda: self.mailer
        app.dependency_overrides[get_image_storage] = lambda: self.storage
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    @staticmethod
    def auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def count(self, model) -> int:
        with session_scope(self.sessions) as db:
            return db.query(model).count()


class TestHealth(_ApiTestCase):
    def test_health_reports_database_and_providers(self) -> None:
        body = self.client.get("/api/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")
        self.assertEqual(set(body["providers"]), {"identity", "email", "storage"})


class TestAdminGate(_ApiTestCase):
    """Admin routes: 401 without/invalid token, 403 for non-admins, 200 for admins."""

    def test_missing_header(self) -> None:
        resp = self.client.get("/api/tickets")
        self.assertEqual(resp.status_code, 401)
        self.assertIn("error", resp.json())

    def test_malformed_header(self) -> None:
        resp = self.client.get("/api/tickets", headers={"Authorization": ADMIN_TOKEN})
        self.assertEqual(resp.status_code, 401)

    def test_unknown_token(self) -> None:
        resp = self.client.get("/api/tickets", headers=self.auth("nope"))
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"], "无效的令牌")

    def test_non_admin(self) -> None:
        resp = self.client.get("/api/tickets", headers=self.auth(USER_TOKEN))
        self.assertEqual(resp.status_code, 403)

    def test_no_profile(self) -> None:
        resp = self.client.get("/api/admin/wiki/categories", headers=self.auth(NO_PROFILE_TOKEN))
        self.assertEqual(resp.status_code, 403)

    def test_admin(self) -> None:
        resp = self.client.get("/api/tickets", headers=self.auth(ADMIN_TOKEN))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), [])

    def test_gate_runs_before_mutation(self) -> None:
        resp = self.client.post(
            "/api/admin/wiki/categories", json={"name": "Guides"}, headers=self.auth(USER_TOKEN)
        )
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(self.count(WikiCategory), 0)


class TestTicketRoutes(_ApiTestCase):
    def test_submit_requires_token(self) -> None:
        resp = self.client.post("/api/tickets", json={"subject": "S", "message": "M"})
        self.assertEqual(resp.status_code, 401)

    def test_empty_subject_no_side_effects(self) -> None:
        resp = self.client.post(
            "/api/tickets", json={"subject": "", "message": "M"}, headers=self.auth(USER_TOKEN)
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.count(Ticket), 0)
        self.assertEqual(self.mailer.sent, [])

    def test_submit_and_list(self) -> None:
        resp = self.client.post(
            "/api/tickets", json={"subject": "Help", "message": "It broke"}, headers=self.auth(USER_TOKEN)
        )
        self.assertEqual(resp.status_code, 200)
        ticket = resp.json()["ticket"]
        self.assertEqual(ticket["subject"], "Help")
        self.assertEqual(ticket["user_id"], "user-1")
        self.assertEqual(self.mailer.sent[0]["to"], "user@example.com")

        listed = self.client.get("/api/tickets", headers=self.auth(ADMIN_TOKEN)).json()
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["name"], "alice")
        self.assertEqual(listed[0]["email"], "user@example.com")

    def test_email_failure_is_500_and_ticket_not_kept(self) -> None:
        self.mailer.fail = True
        resp = self.client.post(
            "/api/tickets", json={"subject": "Help", "message": "It broke"}, headers=self.auth(USER_TOKEN)
        )
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(self.count(Ticket), 0)

    def test_list_fallbacks(self) -> None:
        with session_scope(self.sessions) as db:
            db.add_all([
                Ticket(subject="a", message="m", user_id="user-2", submitted_at=datetime(2026, 1, 2, tzinfo=UTC)),
                Ticket(subject="b", message="m", user_id=None, submitted_at=datetime(2026, 1, 1, tzinfo=UTC)),
            ])
            db.commit()
        listed = self.client.get("/api/tickets", headers=self.auth(ADMIN_TOKEN)).json()
        self.assertEqual([(t["name"], t["email"]) for t in listed], [
            ("未知用户", "ghost@example.com"),
            ("匿名用户", "N/A"),
        ])


class TestWikiRoutes(_ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        with session_scope(self.sessions) as db:
            category = WikiCategory(name="Guides")
            db.add(category)
            db.flush()
            db.add(WikiArticle(title="Install", slug="install", content="steps", category_id=category.id))
            db.commit()

    def test_unknown_slug(self) -> None:
        resp = self.client.get("/api/wiki/article/missing")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "文章未找到"})

    def test_known_slug(self) -> None:
        body = self.client.get("/api/wiki/article/install").json()
        self.assertEqual(body["title"], "Install")
        self.assertEqual(body["content"], "steps")
        self.assertIn("updated_at", body)
        self.assertEqual(body["category"], {"name": "Guides"})

    def test_index_aliases(self) -> None:
        for path in ("/api/wiki/list", "/api/wiki/content"):
            body = self.client.get(path).json()
            self.assertEqual(body, [{"name": "Guides", "wiki_articles": [{"title": "Install", "slug": "install"}]}])

    def test_admin_article_crud(self) -> None:
        headers = self.auth(ADMIN_TOKEN)
        created = self.client.post(
            "/api/admin/wiki/articles",
            json={"title": "FAQ", "slug": "faq", "content": "Q&A", "chapters": "Q1\nQ2", "category_id": ""},
            headers=headers,
        )
        self.assertEqual(created.status_code, 201)
        article = created.json()
        self.assertEqual(article["content"], "## Q1\n\n## Q2\n\nQ&A")
        self.assertEqual(article["chapters"], "Q1\nQ2")

        updated = self.client.put(
            f"/api/admin/wiki/articles/{article['id']}",
            json={"title": "FAQ", "slug": "faq", "content": "new"},
            headers=headers,
        )
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["content"], "new")

        missing_title = self.client.post(
            "/api/admin/wiki/articles", json={"slug": "x"}, headers=headers
        )
        self.assertEqual(missing_title.status_code, 400)

        self.assertEqual(self.client.get("/api/admin/wiki/articles/9999", headers=headers).status_code, 404)
        listed = self.client.get("/api/admin/wiki/articles", headers=headers).json()
        self.assertEqual({a["slug"] for a in listed}, {"install", "faq"})

    def test_delete_category(self) -> None:
        headers = self.auth(ADMIN_TOKEN)
        categories = self.client.get("/api/admin/wiki/categories", headers=headers).json()
        resp = self.client.delete(f"/api/admin/wiki/categories/{categories[0]['id']}", headers=headers)
        self.assertEqual(resp.status_code, 204)
        body = self.client.get("/api/wiki/article/install").json()
        self.assertIsNone(body["category"])

    def test_upload_image(self) -> None:
        resp = self.client.post(
            "/api/admin/wiki/upload-image",
            files={"wiki_image": ("photo.png", b"\x89PNG data", "image/png")},
            headers=self.auth(ADMIN_TOKEN),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["imageUrl"], "https://s3.example.com/bucket/wiki-images/x.png")
        key, content, content_type = self.storage.upload_public.await_args.args
        self.assertRegex(key, r"^wiki-images/[0-9a-f]{32}\.png$")
        self.assertEqual(content, b"\x89PNG data")
        self.assertEqual(content_type, "image/png")

    def test_upload_without_file(self) -> None:
        resp = self.client.post("/api/admin/wiki/upload-image", headers=self.auth(ADMIN_TOKEN))
        self.assertEqual(resp.status_code, 400)
        self.storage.upload_public.assert_not_awaited()

    def test_upload_storage_failure(self) -> None:
        self.storage.upload_public.side_effect = StorageError("Failed to upload file: denied")
        resp = self.client.post(
            "/api/admin/wiki/upload-image",
            files={"wiki_image": ("photo.png", b"data", "image/png")},
            headers=self.auth(ADMIN_TOKEN),
        )
        self.assertEqual(resp.status_code, 500)


class TestAuthRoutes(_ApiTestCase):
    def _latest_code(self, email: str, purpose: str) -> str:
        with session_scope(self.sessions) as db:
            row = (
                db.query(VerificationCode)
                .filter(VerificationCode.email == email, VerificationCode.purpose == purpose)
                .order_by(VerificationCode.expires_at.desc())
                .first()
            )
            return row.code

    def test_send_code_requires_fields(self) -> None:
        resp = self.client.post("/api/send-code", json={"email": "new@example.com"})
        self.assertEqual(resp.status_code, 400)

    def test_send_code_duplicate_account(self) -> None:
        resp = self.client.post("/api/send-code", json={"email": "user@example.com", "username": "x"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "该邮箱已被注册")
        self.assertEqual(self.mailer.sent, [])

    def test_signup_flow(self) -> None:
        email = "new@example.com"
        self.assertEqual(
            self.client.post("/api/send-code", json={"email": email, "username": "bob"}).status_code, 200
        )
        code = self._latest_code(email, PURPOSE_SIGNUP)
        body = {"username": "bob", "email": email, "code": code, "password": "secret-pw"}

        bad = self.client.post("/api/register", json={**body, "code": "000000" if code != "000000" else "111111"})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.json()["error"], "验证码无效或已过期")

        ok = self.client.post("/api/register", json=body)
        self.assertEqual(ok.status_code, 200)
        [user] = [u for u in self.identity.users.values() if u.email == email]
        with session_scope(self.sessions) as db:
            profile = db.get(Profile, user.id)
            self.assertEqual((profile.username, profile.role), ("bob", "user"))

        replay = self.client.post("/api/register", json=body)
        self.assertEqual(replay.status_code, 400)

    def test_password_reset_flow(self) -> None:
        resp = self.client.post("/api/password/send-reset-code", json={"email": "user@example.com"})
        self.assertEqual(resp.status_code, 200)
        code = self._latest_code("user@example.com", PURPOSE_PASSWORD_RESET)
        resp = self.client.post(
            "/api/password/reset",
            json={"email": "user@example.com", "code": code, "newPassword": "brand-new"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.identity.passwords["user@example.com"], "brand-new")

    def test_reset_code_for_unknown_email_same_answer(self) -> None:
        resp = self.client.post("/api/password/send-reset-code", json={"email": "nobody@example.com"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.mailer.sent, [])

    def test_magic_link_sent_with_dashboard_redirect(self) -> None:
        resp = self.client.post("/api/auth", json={"email": "user@example.com"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "登录链接已发送，请检查您的邮箱。")
        [(email, redirect_to)] = self.identity.magic_links
        self.assertEqual(email, "user@example.com")
        self.assertTrue(redirect_to.endswith("/dashboard.html"))
        [sent] = self.mailer.sent
        self.assertEqual(sent["to"], "user@example.com")
        self.assertIn("token=ml-1", sent["html"])

    def test_magic_link_requires_email(self) -> None:
        resp = self.client.post("/api/auth", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.identity.magic_links, [])

    def test_magic_link_email_failure(self) -> None:
        self.mailer.fail = True
        resp = self.client.post("/api/auth", json={"email": "user@example.com"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["error"], "发送邮件时发生内部错误。")

    def test_password_login(self) -> None:
        ok = self.client.post("/api/login/password", json={"email": "user@example.com", "password": "user-pass"})
        self.assertEqual(ok.status_code, 200)
        self.assertIn("access_token", ok.json()["session"])
        bad = self.client.post("/api/login/password", json={"email": "user@example.com", "password": "wrong"})
        self.assertEqual(bad.status_code, 401)

    def test_admin_login(self) -> None:
        ok = self.client.post("/login", json={"email": "admin@example.com", "password": "admin-pass"})
        self.assertEqual(ok.status_code, 200)
        self.assertTrue(ok.json()["accessToken"])
        denied = self.client.post("/login", json={"email": "user@example.com", "password": "user-pass"})
        self.assertEqual(denied.status_code, 403)

    def test_malformed_body_is_400(self) -> None:
        resp = self.client.post("/api/login/password", content="not json", headers={"Content-Type": "application/json"})
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
