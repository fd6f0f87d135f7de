import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from portfolio_backend.app import create_app
from portfolio_backend.auth import hash_password
from portfolio_backend.config import Settings
from portfolio_backend.dependencies import get_store
from portfolio_backend.store import InMemoryKeyValueStore

PNG = b"\x89PNG\r\n\x1a\n" + b"0" * 64

MARKDOWN = """---
title: Imported Post
tags: [python]
publishedAt: 2024-04-01
---

This paragraph becomes the excerpt of the imported post.
"""


class PortfolioApiTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.settings = Settings(
            use_in_memory_backends=True,
            jwt_secret="test-secret",
            admin_password_hash=hash_password("secret"),
            upload_dir=str(root / "uploads"),
            skills_upload_dir=str(root / "skills-upload"),
            blog_upload_dir=str(root / "blog-upload"),
        )
        self.store = InMemoryKeyValueStore()
        app = create_app(self.settings)
        app.dependency_overrides[get_store] = lambda: self.store
        self.client = TestClient(app)

    def tearDown(self):
        self.tmp.cleanup()

    def _login(self) -> dict:
        response = self.client.post("/api/v1/auth/login", json={"username": "admin", "password": "secret"})
        self.assertEqual(response.status_code, 200)
        return {"Authorization": f"Bearer {response.json()['token']}"}

    def test_protected_routes_require_token(self):
        response = self.client.post("/api/v1/skills", json={"category": "Languages", "skill": "Rust"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Authentication required")

        for method, path in [
            ("get", "/api/v1/upload/uploads"),
            ("get", "/api/v1/blog/admin/posts"),
            ("delete", "/api/v1/projects/anything"),
        ]:
            self.assertEqual(getattr(self.client, method)(path).status_code, 401)

        bad = {"Authorization": "Bearer not-a-token"}
        response = self.client.get("/api/v1/auth/verify", headers=bad)
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid or expired token")

    def test_login_sets_cookie_and_logout_revokes(self):
        response = self.client.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong"})
        self.assertEqual(response.status_code, 401)

        headers = self._login()
        self.assertIn("admin_token", self.client.cookies)
        verify = self.client.get("/api/v1/auth/verify", headers=headers)
        self.assertEqual(verify.status_code, 200)
        self.assertEqual(verify.json()["username"], "admin")

        logout = self.client.post("/api/v1/auth/logout", headers=headers)
        self.assertEqual(logout.json(), {"message": "Logout successful"})
        self.assertEqual(self.client.get("/api/v1/auth/verify", headers=headers).status_code, 401)

    def test_login_rate_limit(self):
        for _ in range(self.settings.max_login_attempts):
            self.client.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong"})
        response = self.client.post("/api/v1/auth/login", json={"username": "admin", "password": "secret"})
        self.assertEqual(response.status_code, 429)

    def test_forwarded_for_ignored_from_untrusted_peer(self):
        for attempt in range(self.settings.max_login_attempts):
            self.client.post(
                "/api/v1/auth/login",
                json={"username": "admin", "password": "wrong"},
                headers={"X-Forwarded-For": f"203.0.113.{attempt}"},
            )
        response = self.client.post(
            "/api/v1/auth/login",
            json={"username": "admin", "password": "secret"},
            headers={"X-Forwarded-For": "198.51.100.7"},
        )
        self.assertEqual(response.status_code, 429)

    def test_forwarded_for_honoured_from_trusted_proxy(self):
        app = create_app(self.settings.model_copy(update={"trusted_proxies": "testclient"}))
        app.dependency_overrides[get_store] = lambda: self.store
        client = TestClient(app)

        for _ in range(self.settings.max_login_attempts):
            client.post(
                "/api/v1/auth/login",
                json={"username": "admin", "password": "wrong"},
                headers={"X-Forwarded-For": "203.0.113.1"},
            )
        blocked = client.post(
            "/api/v1/auth/login",
            json={"username": "admin", "password": "secret"},
            headers={"X-Forwarded-For": "203.0.113.1, 10.0.0.1"},
        )
        self.assertEqual(blocked.status_code, 429)
        other = client.post(
            "/api/v1/auth/login",
            json={"username": "admin", "password": "secret"},
            headers={"X-Forwarded-For": "198.51.100.7"},
        )
        self.assertEqual(other.status_code, 200)

    def test_skill_flow(self):
        headers = self._login()
        created = self.client.post(
            "/api/v1/skills", json={"category": "Languages", "skill": "Rust"}, headers=headers
        )
        self.assertEqual(created.status_code, 201)
        skill_id = created.json()["skill"]["id"]
        self.assertEqual(skill_id, "skill:Languages:Rust")

        listing = self.client.get("/api/v1/skills").json()
        self.assertEqual(listing["categories"], ["Languages"])
        self.assertEqual(self.client.get("/api/v1/skills", params={"category": "Languages"}).json()["count"], 1)

        duplicate = self.client.post(
            "/api/v1/skills", json={"category": "Languages", "skill": "Rust"}, headers=headers
        )
        self.assertEqual(duplicate.status_code, 409)

        deleted = self.client.delete(f"/api/v1/skills/{skill_id}", headers=headers)
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get("/api/v1/skills/categories").json(), {"categories": [], "count": 0})

    def test_project_flow(self):
        headers = self._login()
        created = self.client.post(
            "/api/v1/projects",
            json={
                "title": "Portfolio Site",
                "description": "My site",
                "status": "Live",
                "image": "/uploads/old.png",
                "tools": [{"skill": "Go", "icon": "/skills-upload/go.svg"}],
            },
            headers=headers,
        )
        self.assertEqual(created.status_code, 201)
        project = created.json()["project"]
        self.assertIn("createdAt", project)

        updated = self.client.put(
            f"/api/v1/projects/{project['id']}",
            json={"title": "", "image": "", "featured": True},
            headers=headers,
        ).json()["project"]
        self.assertEqual(updated["title"], "Portfolio Site")
        self.assertEqual(updated["image"], "")
        self.assertEqual(updated["tools"], project["tools"])
        self.assertTrue(updated["featured"])

        views = self.client.post("/api/v1/projects/portfolio-site/views").json()
        self.assertEqual(views["view_count"], 1)
        self.assertEqual(self.client.get("/api/v1/analytics/stats").json()["project_view"], 1)

        self.assertEqual(self.client.get("/api/v1/projects/popular?count=abc").json()["count"], 1)
        self.assertEqual(self.client.get("/api/v1/projects", params={"status": "Live"}).json()["count"], 1)
        self.assertEqual(self.client.get("/api/v1/projects/missing").status_code, 404)

        self.assertEqual(
            self.client.delete(f"/api/v1/projects/{project['id']}", headers=headers).status_code, 204
        )
        self.assertEqual(self.client.get("/api/v1/projects/statuses").json()["count"], 0)

    def test_blog_flow(self):
        headers = self._login()
        created = self.client.post(
            "/api/v1/blog/posts",
            json={"title": "Hello World", "content": "Some words here.", "tags": ["intro"]},
            headers=headers,
        )
        self.assertEqual(created.status_code, 201)
        post = created.json()["post"]
        self.assertFalse(post["published"])

        self.assertEqual(self.client.get("/api/v1/blog/posts").json()["total"], 0)
        self.assertEqual(self.client.get("/api/v1/blog/admin/posts", headers=headers).json()["total"], 1)

        self.client.put(f"/api/v1/blog/posts/{post['id']}", json={"published": True}, headers=headers)
        listing = self.client.get("/api/v1/blog/posts", params={"page": 1, "limit": 5}).json()
        self.assertEqual(listing["total"], 1)
        self.assertEqual(listing["posts"][0]["tags"], ["intro"])

        full = self.client.get("/api/v1/blog/posts/hello-world").json()["post"]
        self.assertEqual(full["view_count"], 1)
        self.assertEqual(full["content"], "Some words here.")
        self.assertEqual(self.client.get("/api/v1/blog/tags").json(), {"tags": ["intro"], "count": 1})
        tagged = self.client.get("/api/v1/blog/posts", params={"tag": "intro"}).json()
        self.assertEqual(tagged["count"], 1)

        self.assertEqual(
            self.client.delete(f"/api/v1/blog/posts/{post['id']}", headers=headers).status_code, 204
        )
        self.assertEqual(self.client.get("/api/v1/blog/posts/hello-world").status_code, 404)

    def test_markdown_import_and_export(self):
        headers = self._login()
        payload = {"content": MARKDOWN, "filename": "imported.md"}
        imported = self.client.post("/api/v1/blog/import-md", json=payload, headers=headers)
        self.assertEqual(imported.status_code, 201)
        self.assertEqual(imported.json()["post"]["slug"], "imported-post")

        again = self.client.post("/api/v1/blog/import-md", json=payload, headers=headers)
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["existing_id"], "blog:imported-post")

        bulk = self.client.post(
            "/api/v1/blog/import-bulk",
            json={"files": [payload, {"content": "no front matter", "filename": "bad.md"}]},
            headers=headers,
        ).json()
        self.assertEqual(bulk["total_files"], 2)
        self.assertEqual(bulk["success_count"], 0)
        self.assertEqual(bulk["failed_count"], 2)

        exported = self.client.get("/api/v1/blog/export-md/imported-post", headers=headers)
        self.assertEqual(exported.status_code, 200)
        self.assertTrue(exported.headers["content-type"].startswith("text/markdown"))
        self.assertIn('filename="imported-post.md"', exported.headers["content-disposition"])
        self.assertIn("title: Imported Post", exported.text)

    def test_upload_and_serve(self):
        headers = self._login()
        self.client.post(
            "/api/v1/projects",
            json={"title": "Shop", "description": "Store front", "status": "Live"},
            headers=headers,
        )
        for name in ("first.png", "second.png"):
            uploaded = self.client.post(
                "/api/v1/upload/project/project:shop",
                files={"file": (name, PNG, "image/png")},
                headers=headers,
            )
            self.assertEqual(uploaded.status_code, 201)
        self.assertEqual(uploaded.json()["url"], "/uploads/project-shop-main.png")
        self.assertEqual(self.client.get("/api/v1/projects/shop").json()["project"]["image"], uploaded.json()["url"])
        self.assertEqual(self.client.get("/api/v1/upload/uploads", headers=headers).json()["count"], 1)

        served = self.client.get("/uploads/project-shop-main.png")
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, PNG)
        self.assertEqual(served.headers["cache-control"], "no-cache, no-store, must-revalidate")
        self.assertEqual(served.headers["pragma"], "no-cache")

        self.assertEqual(self.client.get("/uploads/..%2Fsecret.txt").status_code, 400)
        self.assertEqual(self.client.get("/uploads/missing.png").status_code, 404)

        secret = Path(self.tmp.name) / "secret.txt"
        secret.write_text("TOP-SECRET")
        for path in ("/uploads/" + str(secret), "/uploads/" + str(secret).replace("/", "%252F")):
            outside = self.client.get(path)
            self.assertEqual(outside.status_code, 404)
            self.assertNotIn(b"TOP-SECRET", outside.content)

        rejected = self.client.post(
            "/api/v1/upload", files={"file": ("notes.txt", b"hi", "text/plain")}, headers=headers
        )
        self.assertEqual(rejected.status_code, 400)

    def test_analytics_and_legacy_routes(self):
        self.assertEqual(self.client.post("/api/counter").json()["count"], 1)
        self.assertEqual(self.client.post("/api/counter").json()["count"], 2)
        self.client.post("/api/projectviews")

        visit = self.client.post("/api/v1/analytics/visit", json={"page": "/about"})
        self.assertEqual(visit.status_code, 201)
        self.assertIn("visit_id", visit.json())

        stats = self.client.get("/api/v1/analytics/all").json()
        self.assertEqual(stats["visits"], 2)
        self.assertEqual(stats["project_view"], 1)
        self.assertEqual(len(stats["daily_stats"]), 7)
        self.assertEqual(stats["daily_stats"][-1]["site_visits"], 3)

        self.assertEqual(self.client.get("/api/skills").status_code, 200)
        self.assertEqual(self.client.get("/api/blog/tags").json(), {"tags": [], "count": 0})

    def test_system_routes(self):
        self.assertEqual(self.client.get("/health").json()["status"], "healthy")
        self.assertEqual(self.client.get("/api/v1/test").status_code, 200)
        redis_test = self.client.get("/api/v1/redis-test").json()
        self.assertTrue(redis_test["values_match"])

    def test_invalid_body_is_400(self):
        headers = self._login()
        response = self.client.post("/api/v1/projects", json={"title": "No status"}, headers=headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request format")


if __name__ == "__main__":
    unittest.main()
