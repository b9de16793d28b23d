import tempfile
import unittest
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from app.main import create_app
from support import ADMIN_PASSWORD, FakeBlobStore, make_settings, png_bytes, png_header


class ApiTestCase(unittest.TestCase):
    settings_overrides = {}
    base_url = "http://testserver"

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.blob_store = FakeBlobStore()
        self.app = create_app(make_settings(self.tmpdir.name, **self.settings_overrides), blob_store=self.blob_store)
        self.client = TestClient(self.app, base_url=self.base_url)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self.tmpdir.cleanup()

    def login(self, password=ADMIN_PASSWORD, username="admin"):
        return self.client.post("/api/admin/login", json={"username": username, "password": password})

    def post_memory(self, **data):
        files = data.pop("files", None)
        return self.client.post("/api/memories", data=data, files=files)

    def upload_photo(self, filename="photo.png", caption="", content=None, content_type="image/png"):
        return self.client.post(
            "/api/admin/gallery",
            data={"caption": caption},
            files={"photo": (filename, content if content is not None else png_bytes(), content_type)},
        )


class PublicMemoriesTests(ApiTestCase):
    def test_submitted_memory_is_listed_first(self):
        self.post_memory(**{"from": "Bob", "message": "Earlier"})
        response = self.post_memory(**{"from": "Alice", "message": "Hi"})
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["memory"]["from"], "Alice")
        self.assertIsNone(payload["memory"]["photo"])

        listing = self.client.get("/api/memories")
        self.assertEqual(listing.status_code, 200)
        memories = listing.json()["memories"]
        self.assertEqual([m["from"] for m in memories], ["Alice", "Bob"])
        self.assertEqual(memories[0]["message"], "Hi")
        self.assertTrue(memories[0]["timestamp"])

    def test_timestamp_carries_utc_offset(self):
        created = self.post_memory(**{"from": "Alice", "message": "Hi"}).json()["memory"]["timestamp"]
        listed = self.client.get("/api/memories").json()["memories"][0]["timestamp"]

        for value in (created, listed):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            self.assertEqual(parsed.utcoffset(), timedelta(0))

    def test_submission_is_trimmed(self):
        response = self.post_memory(**{"from": "  Alice ", "message": " Hi  "})
        self.assertEqual(response.json()["memory"]["from"], "Alice")
        self.assertEqual(response.json()["memory"]["message"], "Hi")

    def test_validation_errors(self):
        response = self.post_memory(**{"from": "a" * 101, "message": ""})
        self.assertEqual(response.status_code, 400)
        payload = response.json()
        self.assertFalse(payload["success"])
        self.assertEqual(
            payload["errors"],
            ["Name must be less than 100 characters", "Message is required"],
        )
        self.assertEqual(self.client.get("/api/memories").json()["memories"], [])

    def test_memory_with_photo(self):
        response = self.post_memory(
            **{"from": "Alice", "message": "Hi", "files": {"photo": ("beach.png", png_bytes(), "image/png")}}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self.blob_store.uploads[0]["folder"], "memories")
        self.assertTrue(response.json()["memory"]["photo"].startswith("https://"))

    def test_rejects_non_image_upload(self):
        response = self.post_memory(
            **{"from": "Alice", "message": "Hi", "files": {"photo": ("notes.txt", b"hello", "text/plain")}}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Only image files are allowed")
        self.assertEqual(self.blob_store.uploads, [])

    def test_rejects_image_extension_with_bad_content(self):
        response = self.post_memory(
            **{"from": "Alice", "message": "Hi", "files": {"photo": ("fake.png", b"not really a png", "image/png")}}
        )
        self.assertEqual(response.status_code, 400)

    def test_rejects_image_declaring_huge_dimensions(self):
        response = self.post_memory(
            **{"from": "Alice", "message": "Hi", "files": {"photo": ("bomb.png", png_header(30000, 30000), "image/png")}}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Only image files are allowed")
        self.assertEqual(self.blob_store.uploads, [])

    def test_forwarded_header_ignored_outside_production(self):
        for i in range(5):
            response = self.client.post(
                "/api/memories", data={"from": "Alice", "message": f"msg {i}"}, headers={"X-Forwarded-For": f"10.0.0.{i}"}
            )
            self.assertEqual(response.status_code, 201)

        response = self.client.post(
            "/api/memories", data={"from": "Alice", "message": "again"}, headers={"X-Forwarded-For": "10.0.0.99"}
        )
        self.assertEqual(response.status_code, 429)

    def test_submission_rate_limit(self):
        for i in range(5):
            response = self.post_memory(**{"from": "Alice", "message": f"msg {i}"})
            self.assertEqual(response.status_code, 201)

        response = self.post_memory(**{"from": "Alice", "message": "one too many"})
        self.assertEqual(response.status_code, 429)
        self.assertFalse(response.json()["success"])
        self.assertEqual(len(self.client.get("/api/memories").json()["memories"]), 5)

    def test_pagination(self):
        for i in range(3):
            self.post_memory(**{"from": f"n{i}", "message": "m"})
        response = self.client.get("/api/memories", params={"limit": 1, "offset": 1})
        self.assertEqual([m["from"] for m in response.json()["memories"]], ["n1"])


class UploadLimitTests(ApiTestCase):
    settings_overrides = {"MAX_UPLOAD_BYTES": 1024}

    def test_rejects_oversized_photo(self):
        self.login()
        response = self.upload_photo(content=png_bytes(size=(64, 64), noise=True))
        self.assertEqual(response.status_code, 400)
        self.assertIn("too large", response.json()["message"])
        self.assertEqual(self.blob_store.uploads, [])


class AdminAuthTests(ApiTestCase):
    def test_status_defaults_to_anonymous(self):
        self.assertEqual(self.client.get("/api/admin/status").json(), {"isAuthenticated": False})

    def test_admin_routes_require_login(self):
        for method, path in [
            ("get", "/api/admin/gallery"),
            ("get", "/api/admin/memories"),
            ("delete", "/api/admin/gallery/1"),
            ("delete", "/api/admin/memories/1"),
        ]:
            response = getattr(self.client, method)(path)
            self.assertEqual(response.status_code, 401, path)
            self.assertEqual(response.json()["message"], "Unauthorized. Please log in.")

    def test_wrong_password_twice_then_correct(self):
        for _ in range(2):
            response = self.login(password="wrong")
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json()["message"], "Invalid credentials")

        response = self.login()
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertIn("memorial_session", response.headers["set-cookie"])
        self.assertIn("httponly", response.headers["set-cookie"].lower())
        self.assertEqual(self.client.get("/api/admin/status").json(), {"isAuthenticated": True})

    def test_unknown_username_gets_same_message(self):
        response = self.login(username="root")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Invalid credentials")

    def test_missing_credentials(self):
        response = self.client.post("/api/admin/login", json={"username": "admin"})
        self.assertEqual(response.status_code, 400)

    def test_login_attempts_are_capped(self):
        for _ in range(5):
            self.login(password="wrong")

        response = self.login()
        self.assertEqual(response.status_code, 429)
        self.assertEqual(self.client.get("/api/admin/status").json(), {"isAuthenticated": False})

    def test_logout_destroys_session(self):
        self.login()
        cookie = self.client.cookies.get("memorial_session")

        response = self.client.post("/api/admin/logout")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/admin/status").json(), {"isAuthenticated": False})

        # Replaying the old cookie does not revive the session
        response = self.client.get("/api/admin/gallery", headers={"Cookie": f"memorial_session={cookie}"})
        self.assertEqual(response.status_code, 401)

    def test_authenticated_request_reissues_cookie(self):
        self.login()

        response = self.client.get("/api/admin/status")
        self.assertEqual(response.json(), {"isAuthenticated": True})
        self.assertIn("memorial_session=", response.headers.get("set-cookie", ""))

    def test_anonymous_request_sets_no_cookie(self):
        response = self.client.get("/api/admin/status")
        self.assertNotIn("set-cookie", response.headers)

    def test_forged_cookie_is_anonymous(self):
        response = self.client.get("/api/admin/status", headers={"Cookie": "memorial_session=forged-value"})
        self.assertEqual(response.json(), {"isAuthenticated": False})


class AdminGalleryTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.assertEqual(self.login().status_code, 200)

    def test_upload_appends_to_gallery(self):
        first = self.upload_photo(filename="one.png", caption="First")
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["photo"]["order"], 1)
        self.assertEqual(first.json()["photo"]["caption"], "First")
        self.assertEqual(first.json()["photo"]["filename"], "one.png")

        second = self.upload_photo(filename="two.webp", content_type="image/webp")
        self.assertEqual(second.json()["photo"]["order"], 2)
        self.assertEqual(second.json()["photo"]["caption"], "")

        photos = self.client.get("/api/gallery").json()["photos"]
        self.assertEqual([p["filename"] for p in photos], ["one.png", "two.webp"])
        self.assertEqual(datetime.fromisoformat(photos[0]["created_at"].replace("Z", "+00:00")).utcoffset(), timedelta(0))
        self.assertEqual([u["folder"] for u in self.blob_store.uploads], ["gallery", "gallery"])

    def test_upload_requires_photo(self):
        response = self.client.post("/api/admin/gallery", data={"caption": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "No photo uploaded")

    def test_delete_removes_photo_and_blob_once(self):
        photo = self.upload_photo().json()["photo"]

        response = self.client.delete(f"/api/admin/gallery/{photo['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/gallery").json()["photos"], [])
        self.assertEqual(self.blob_store.deleted, [photo["photo_url"]])

        response = self.client.delete(f"/api/admin/gallery/{photo['id']}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(len(self.blob_store.deleted), 1)

    def test_update_caption(self):
        photo = self.upload_photo().json()["photo"]

        response = self.client.put(f"/api/admin/gallery/{photo['id']}", json={"caption": "Lake house"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["photo"]["caption"], "Lake house")

        response = self.client.put("/api/admin/gallery/999", json={"caption": "x"})
        self.assertEqual(response.status_code, 404)

    def test_reorder(self):
        a = self.upload_photo(filename="a.png").json()["photo"]
        b = self.upload_photo(filename="b.png").json()["photo"]

        response = self.client.put(
            "/api/admin/gallery/reorder",
            json={"photos": [{"id": a["id"], "order": 2}, {"id": b["id"], "order": 1}]},
        )
        self.assertEqual(response.status_code, 200)

        photos = self.client.get("/api/admin/gallery").json()["photos"]
        self.assertEqual([p["filename"] for p in photos], ["b.png", "a.png"])

    def test_reorder_unknown_photo(self):
        response = self.client.put("/api/admin/gallery/reorder", json={"photos": [{"id": 42, "order": 1}]})
        self.assertEqual(response.status_code, 404)

    def test_reorder_rejects_duplicate_ids(self):
        a = self.upload_photo().json()["photo"]
        response = self.client.put(
            "/api/admin/gallery/reorder",
            json={"photos": [{"id": a["id"], "order": 1}, {"id": a["id"], "order": 2}]},
        )
        self.assertEqual(response.status_code, 400)


class AdminMemoriesTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.assertEqual(self.login().status_code, 200)

    def test_edit_keeps_timestamp_and_omitted_fields(self):
        memory = self.post_memory(**{"from": "Alice", "message": "Hi"}).json()["memory"]

        response = self.client.put(f"/api/admin/memories/{memory['id']}", json={"from": "Alicia"})
        self.assertEqual(response.status_code, 200)
        updated = response.json()["memory"]
        self.assertEqual(updated["from"], "Alicia")
        self.assertEqual(updated["message"], "Hi")

        listed = self.client.get("/api/admin/memories").json()["memories"][0]
        self.assertEqual(listed["from"], "Alicia")
        self.assertEqual(listed["timestamp"], memory["timestamp"])

    def test_edit_validates_length(self):
        memory = self.post_memory(**{"from": "Alice", "message": "Hi"}).json()["memory"]
        response = self.client.put(f"/api/admin/memories/{memory['id']}", json={"from": "a" * 101})
        self.assertEqual(response.status_code, 400)

    def test_edit_missing_memory(self):
        response = self.client.put("/api/admin/memories/999", json={"message": "x"})
        self.assertEqual(response.status_code, 404)

    def test_delete_cascades_to_photo(self):
        memory = self.post_memory(
            **{"from": "Alice", "message": "Hi", "files": {"photo": ("p.png", png_bytes(), "image/png")}}
        ).json()["memory"]

        response = self.client.delete(f"/api/admin/memories/{memory['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.blob_store.deleted, [memory["photo"]])
        self.assertEqual(self.client.get("/api/memories").json()["memories"], [])

    def test_delete_missing_memory(self):
        response = self.client.delete("/api/admin/memories/999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.blob_store.deleted, [])


class ProductionModeTests(ApiTestCase):
    settings_overrides = {"ENVIRONMENT": "production"}
    # Secure cookies are only sent back over https
    base_url = "https://testserver"

    def test_session_cookie_is_cross_site(self):
        response = self.login()
        self.assertEqual(response.status_code, 200)
        cookie = response.headers["set-cookie"].lower()
        self.assertIn("secure", cookie)
        self.assertIn("samesite=none", cookie)
        self.assertIn("httponly", cookie)
        self.assertEqual(self.client.get("/api/admin/status").json(), {"isAuthenticated": True})

    def test_forwarded_clients_have_separate_limits(self):
        for i in range(5):
            response = self.client.post(
                "/api/memories", data={"from": "Alice", "message": f"msg {i}"}, headers={"X-Forwarded-For": "203.0.113.7"}
            )
            self.assertEqual(response.status_code, 201)

        response = self.client.post(
            "/api/memories", data={"from": "Alice", "message": "blocked"}, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        )
        self.assertEqual(response.status_code, 429)

        response = self.client.post(
            "/api/memories", data={"from": "Bob", "message": "allowed"}, headers={"X-Forwarded-For": "198.51.100.2"}
        )
        self.assertEqual(response.status_code, 201)


class HealthTests(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})
        self.assertEqual(self.client.get("/health/db").json()["database"], "connected")


if __name__ == "__main__":
    unittest.main()
