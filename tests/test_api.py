import pytest
from httpx import ASGITransport, AsyncClient

from conftest import ADMIN_PASSWORD, ADMIN_USERNAME
from school_cms.core.errors import SERVER_ERROR_MESSAGE
from school_cms.core.rate_limit import API_LIMIT_MESSAGE, AUTH_LIMIT_MESSAGE
from school_cms.main import create_app

ADMIN_ROUTES = [
    ("POST", "/api/classes", {"name": "الصف الأول"}),
    ("PUT", "/api/classes/1", {"name": "الصف الأول"}),
    ("DELETE", "/api/classes/1", None),
    ("POST", "/api/classes/reorder", {"order": [1]}),
    ("GET", "/api/units", None),
    ("POST", "/api/units", {"title": "الوحدة", "class_id": 1}),
    ("POST", "/api/units/reorder", {"order": [1]}),
    ("GET", "/api/lessons", None),
    ("POST", "/api/lessons", {"title": "الدرس", "unit_id": 1}),
    ("DELETE", "/api/lessons/1", None),
    ("GET", "/api/lessons/1/questions/admin", None),
    ("PUT", "/api/settings/identity", {"schoolName": "أ", "platformLabel": "ب", "adminName": "ج", "adminRole": "د"}),
]


async def create_class(client, name="الصف الأول"):
    response = await client.post("/api/classes", json={"name": name})
    assert response.status_code == 201
    return response.json()


async def create_unit(client, class_id, title="الوحدة الأولى", term="1"):
    response = await client.post("/api/units", json={"title": title, "class_id": class_id, "term": term})
    assert response.status_code == 201
    return response.json()


class TestAuth:
    async def test_login_sets_cookie(self, client):
        response = await client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["admin"]["username"] == ADMIN_USERNAME

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("authToken=")
        assert "HttpOnly" in set_cookie
        assert "SameSite=strict" in set_cookie

    async def test_wrong_password(self, client):
        response = await client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": "nope"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    async def test_missing_credentials(self, client):
        response = await client.post("/api/auth/login", json={"username": "  "})
        assert response.status_code == 400

    async def test_verify_round_trip(self, client):
        response = await client.get("/api/auth/verify")
        assert response.status_code == 401
        assert response.json() == {"authenticated": False}

        await client.post("/api/auth/login", json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD})
        response = await client.get("/api/auth/verify")
        assert response.status_code == 200
        assert response.json()["authenticated"] is True
        assert response.json()["admin"]["username"] == ADMIN_USERNAME

        response = await client.post("/api/auth/logout")
        assert response.json() == {"success": True}
        response = await client.get("/api/auth/verify")
        assert response.status_code == 401

    async def test_verify_invalid_token_clears_cookie(self, client):
        response = await client.get("/api/auth/verify", headers={"Cookie": "authToken=not-a-token"})
        assert response.status_code == 401
        assert "Max-Age=0" in response.headers["set-cookie"]


class TestAuthGate:
    @pytest.mark.parametrize("method, url, body", ADMIN_ROUTES)
    async def test_missing_cookie(self, client, method, url, body):
        response = await client.request(method, url, json=body)
        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_REQUIRED"

    @pytest.mark.parametrize("method, url, body", ADMIN_ROUTES)
    async def test_invalid_cookie(self, client, method, url, body):
        response = await client.request(method, url, json=body, headers={"Cookie": "authToken=forged"})
        assert response.status_code == 403
        assert response.json()["code"] == "INVALID_TOKEN"
        assert response.headers["set-cookie"].startswith("authToken=")

    async def test_rejected_requests_do_not_mutate(self, client):
        await client.post("/api/classes", json={"name": "الصف الأول"})
        await client.put("/api/settings/identity", headers={"Cookie": "authToken=forged"},
                         json={"schoolName": "أ", "platformLabel": "ب", "adminName": "ج", "adminRole": "د"})

        response = await client.get("/api/classes")
        assert response.json() == []
        response = await client.get("/api/settings/identity")
        assert response.json()["schoolName"] != "أ"


class TestClassesAndUnits:
    async def test_end_to_end_unit_reorder(self, admin_client):
        class_row = await create_class(admin_client)
        assert class_row["id"] > 0

        unit_a = await create_unit(admin_client, class_row["id"])
        response = await admin_client.get(f"/api/units/class/{class_row['id']}")
        assert response.status_code == 200
        assert [(u["id"], u["display_order"]) for u in response.json()] == [(unit_a["id"], 0)]

        unit_b = await create_unit(admin_client, class_row["id"], title="الوحدة الثانية")
        response = await admin_client.post("/api/units/reorder", json={"order": [unit_b["id"], unit_a["id"]]})
        assert response.json() == {"success": True, "message": "Units reordered successfully"}

        response = await admin_client.get(f"/api/units/class/{class_row['id']}")
        assert [u["id"] for u in response.json()] == [unit_b["id"], unit_a["id"]]

    async def test_class_reorder_and_dashboard(self, admin_client):
        first = await create_class(admin_client)
        second = await create_class(admin_client, "الصف الثاني")
        unit = await create_unit(admin_client, first["id"])

        response = await admin_client.post("/api/classes/reorder", json={"order": [second["id"], first["id"]]})
        assert response.status_code == 200

        response = await admin_client.get("/api/classes/dashboard-data")
        data = response.json()
        assert [c["id"] for c in data["classes"]] == [second["id"], first["id"]]
        assert data["units"] == [{"id": unit["id"], "class_id": first["id"]}]

    async def test_invalid_reorder(self, admin_client):
        first = await create_class(admin_client)
        response = await admin_client.post("/api/classes/reorder", json={"order": [first["id"], 999]})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ORDER"

    async def test_duplicate_class(self, admin_client):
        await create_class(admin_client)
        response = await admin_client.post("/api/classes", json={"name": "الصف الأول"})
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_CLASS_NAME"

    async def test_non_arabic_name(self, admin_client):
        response = await admin_client.post("/api/classes", json={"name": "Class"})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_CHARACTERS"

    async def test_unit_uniqueness_per_term(self, admin_client):
        class_row = await create_class(admin_client)
        await create_unit(admin_client, class_row["id"])

        response = await admin_client.post(
            "/api/units", json={"title": "الوحدة الأولى", "class_id": class_row["id"], "term": "1"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_UNIT_TITLE"

        await create_unit(admin_client, class_row["id"], term="2")

    async def test_unit_lists(self, admin_client):
        class_row = await create_class(admin_client)
        unit = await create_unit(admin_client, str(class_row["id"]))

        response = await admin_client.get("/api/units/list/all")
        assert response.json() == [{"id": unit["id"], "class_id": class_row["id"]}]

        response = await admin_client.get("/api/units")
        assert response.json()[0]["class_name"] == "الصف الأول"

        response = await admin_client.get(f"/api/units/{unit['id']}")
        assert response.json()["title"] == "الوحدة الأولى"

    async def test_update_and_delete_class(self, admin_client):
        class_row = await create_class(admin_client)

        response = await admin_client.put(f"/api/classes/{class_row['id']}", json={"name": "الصف الثاني"})
        assert response.json()["name"] == "الصف الثاني"

        response = await admin_client.delete(f"/api/classes/{class_row['id']}")
        assert response.json() == {"success": True, "message": "Class deleted"}

        response = await admin_client.get(f"/api/classes/{class_row['id']}")
        assert response.status_code == 404
        assert response.json()["code"] == "CLASS_NOT_FOUND"


class TestLessons:
    @pytest.fixture
    async def unit(self, admin_client):
        class_row = await create_class(admin_client)
        return await create_unit(admin_client, class_row["id"])

    async def test_lesson_lifecycle(self, admin_client, unit):
        response = await admin_client.post("/api/lessons", json={
            "title": "الدرس الأول",
            "unit_id": unit["id"],
            "content": "<p>نص</p>",
            "videos": [{"video_url": "https://video.example/1"}, {"video_url": "https://video.example/2"}],
        })
        assert response.status_code == 201
        lesson = response.json()
        assert len(lesson["videos"]) == 2
        assert lesson["images"] == []

        response = await admin_client.put(f"/api/lessons/{lesson['id']}", json={
            "title": "الدرس الأول",
            "unit_id": unit["id"],
            "videos": [{"video_url": "https://video.example/3"}],
        })
        assert [v["video_url"] for v in response.json()["videos"]] == ["https://video.example/3"]

        response = await admin_client.get(f"/api/lessons/unit/{unit['id']}")
        assert [row["id"] for row in response.json()] == [lesson["id"]]

        response = await admin_client.get("/api/lessons")
        assert response.json()[0]["class_name"] == "الصف الأول"

        response = await admin_client.delete(f"/api/lessons/{lesson['id']}")
        assert response.json()["success"] is True
        response = await admin_client.get(f"/api/lessons/{lesson['id']}")
        assert response.status_code == 404

    async def test_questions_flow(self, admin_client, unit):
        lesson = (await admin_client.post("/api/lessons", json={"title": "الدرس الأول", "unit_id": unit["id"]})).json()
        base = f"/api/lessons/{lesson['id']}/questions"

        response = await admin_client.post(base, json={
            "question_text": "سؤال",
            "option_a": "أ",
            "option_b": "ب",
            "option_c": "ج",
            "option_d": "د",
            "correct_answer": "a",
        })
        assert response.status_code == 201
        question = response.json()
        assert question["display_order"] == 1

        response = await admin_client.get(base)
        assert "correct_answer" not in response.json()[0]

        response = await admin_client.post(f"{base}/{question['id']}/check", json={"answer": "A"})
        assert response.json() == {"correct": True, "correctAnswer": "A"}

        response = await admin_client.post(f"{base}/{question['id']}/check", json={})
        assert response.status_code == 400
        assert response.json()["code"] == "ANSWER_REQUIRED"

        response = await admin_client.delete(f"{base}/{question['id']}")
        assert response.json() == {"success": True, "message": "تم حذف السؤال"}


class TestUpload:
    async def test_upload_image(self, admin_client, storage):
        response = await admin_client.post(
            "/api/lessons/upload-image", files={"image": ("photo.png", b"\x89PNG fake", "image/png")}
        )
        assert response.status_code == 200
        assert response.json() == {"imagePath": "https://images.example.com/photo.png"}
        assert storage.uploads == [("photo.png", b"\x89PNG fake")]

    async def test_wrong_type(self, admin_client, storage):
        response = await admin_client.post(
            "/api/lessons/upload-image", files={"image": ("notes.txt", b"hello", "text/plain")}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FILE_TYPE"
        assert storage.uploads == []

    async def test_too_large(self, admin_client):
        response = await admin_client.post(
            "/api/lessons/upload-image", files={"image": ("big.jpg", b"x" * 2048, "image/jpeg")}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "FILE_TOO_LARGE"

    async def test_no_file(self, admin_client):
        response = await admin_client.post("/api/lessons/upload-image")
        assert response.status_code == 400
        assert response.json()["code"] == "NO_FILE"


class TestSettingsAndSearch:
    async def test_identity(self, admin_client):
        response = await admin_client.get("/api/settings/identity")
        assert response.json()["platformLabel"] == "المنصة التعليمية"

        data = {"schoolName": "مدرسة النور", "platformLabel": "منصة", "adminName": "الإدارة", "adminRole": "المدير"}
        response = await admin_client.put("/api/settings/identity", json=data)
        assert response.json() == data

        response = await admin_client.put("/api/settings/identity", json={**data, "adminRole": ""})
        assert response.status_code == 400
        assert response.json()["code"] == "FIELDS_REQUIRED"

    async def test_search(self, admin_client):
        await create_class(admin_client)

        response = await admin_client.get("/api/search", params={"q": "الصف"})
        assert len(response.json()["classes"]) == 1

        response = await admin_client.get("/api/search", params={"q": "ا"})
        assert response.json() == {"classes": [], "units": [], "lessons": []}


class TestEdges:
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy"}

    async def test_unknown_api_route(self, client):
        response = await client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"error": "Resource not found"}

    @pytest.mark.parametrize("url", ["/api/classes/0", "/api/classes/abc", "/api/lessons/-1"])
    async def test_malformed_ids(self, client, url):
        response = await client.get(url)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("url", ["/api/classes/99999999999999999999", "/api/lessons/9223372036854775808/questions"])
    async def test_out_of_range_ids(self, client, url):
        response = await client.get(url)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_largest_id_is_simply_missing(self, client):
        response = await client.get("/api/classes/9223372036854775807")
        assert response.status_code == 404

    @pytest.mark.parametrize("class_ref", ["²", "١", 99999999999999999999])
    async def test_unparseable_body_ids(self, admin_client, class_ref):
        response = await admin_client.post("/api/units", json={"title": "الوحدة الأولى", "class_id": class_ref})
        assert response.status_code == 400
        assert response.json()["code"] == "CLASS_ID_REQUIRED"

    @pytest.mark.parametrize("order", [["²"], [99999999999999999999]])
    async def test_unparseable_reorder_ids(self, admin_client, order):
        response = await admin_client.post("/api/classes/reorder", json={"order": order})
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ORDER"


class TestRateLimits:
    @pytest.fixture
    async def limited_client(self, settings, storage):
        limited = settings.model_copy(update={
            "rate_limit_enabled": True,
            "api_rate_limit": "2/minute",
            "auth_rate_limit": "1/minute",
        })
        application = create_app(settings=limited, storage=storage)
        async with application.router.lifespan_context(application):
            transport = ASGITransport(app=application, raise_app_exceptions=False)
            async with AsyncClient(transport=transport, base_url="http://test") as async_client:
                yield async_client

    async def test_api_limit(self, limited_client):
        statuses = [(await limited_client.get("/health")).status_code for _ in range(3)]
        assert statuses == [200, 200, 429]

        response = await limited_client.get("/health")
        assert response.json() == {"error": API_LIMIT_MESSAGE, "code": "RATE_LIMITED"}

    async def test_login_limit(self, limited_client):
        credentials = {"username": ADMIN_USERNAME, "password": "wrong"}
        first = await limited_client.post("/api/auth/login", json=credentials)
        second = await limited_client.post("/api/auth/login", json=credentials)

        assert first.status_code == 401
        assert second.status_code == 429
        assert second.json() == {"error": AUTH_LIMIT_MESSAGE, "code": "RATE_LIMITED"}

    async def test_disabled_by_settings(self, client):
        statuses = [(await client.post("/api/auth/login", json={"username": "x", "password": "y"})).status_code
                    for _ in range(3)]
        assert statuses == [401, 401, 401]


class TestServerErrors:
    def failing_client(self, settings, storage, environment):
        application = create_app(settings=settings.model_copy(update={"environment": environment}), storage=storage)

        async def explode():
            raise RuntimeError("database exploded")

        application.add_api_route("/explode", explode)
        transport = ASGITransport(app=application, raise_app_exceptions=False)
        return AsyncClient(transport=transport, base_url="http://test")

    async def test_production_hides_details(self, settings, storage):
        async with self.failing_client(settings, storage, "production") as client:
            response = await client.get("/explode")

        assert response.status_code == 500
        assert response.json() == {"error": SERVER_ERROR_MESSAGE}

    async def test_development_includes_stack(self, settings, storage):
        async with self.failing_client(settings, storage, "development") as client:
            response = await client.get("/explode")

        body = response.json()
        assert response.status_code == 500
        assert body["error"] == "database exploded"
        assert "RuntimeError" in body["stack"]
