import os

from fastapi.testclient import TestClient

# Keep the default app in memory so importing the package never touches disk
os.environ.setdefault("DB_PATH", ":memory-test:")

from todo_api.main import create_app  # noqa: E402
from todo_api.settings import Settings  # noqa: E402

client = TestClient(create_app(Settings(db_path=":memory-test:")))


def create_todo_payload(title="Test Task", description="Do something", status=None):
    payload = {"title": title, "description": description}
    if status is not None:
        payload["status"] = status
    return payload


def create_todo(**kwargs) -> dict:
    res = client.post("/todos", json=create_todo_payload(**kwargs))
    assert res.status_code == 201
    return res.json()


def assert_todo_shape(todo: dict):
    assert set(todo) == {"id", "title", "description", "status"}
    assert isinstance(todo["id"], int)
    assert isinstance(todo["title"], str)
    assert todo["description"] is None or isinstance(todo["description"], str)
    assert todo["status"] in ("pending", "in-progress", "done")


def assert_validation_error(res, field=None):
    assert res.status_code == 400
    body = res.json()
    assert body.get("error") == "ValidationError"
    assert body.get("message") == "Request validation failed"
    assert isinstance(body.get("detail"), list) and body["detail"]
    if field is not None:
        assert any(field in issue["loc"] for issue in body["detail"])


class TestHealth:
    def test_root(self):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"]
        assert data["persistent"] is False

    def test_health_check(self):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "ok"}

    def test_cors_headers(self):
        res = client.get("/", headers={"Origin": "http://example.com"})
        assert "access-control-allow-origin" in res.headers

    def test_unknown_route(self):
        assert client.get("/unknown").status_code == 404


class TestTodosCRUD:
    def test_create_todo_minimal(self):
        res = client.post("/todos", json={"title": "ok"})
        assert res.status_code == 201
        todo = res.json()
        assert_todo_shape(todo)
        assert todo["title"] == "ok"
        assert todo["description"] is None
        assert todo["status"] == "pending"

    def test_create_todo_with_all_fields(self):
        todo = create_todo(title="Task", description="Details", status="in-progress")
        assert todo["status"] == "in-progress"
        assert todo["description"] == "Details"

    def test_ids_increase(self):
        first = create_todo(title="first")
        second = create_todo(title="second")
        assert second["id"] > first["id"]

    def test_get_todo_and_not_found(self):
        todo = create_todo(title="Read book")
        tid = todo["id"]

        res_get = client.get(f"/todos/{tid}")
        assert res_get.status_code == 200
        assert res_get.json() == todo

        res_404 = client.get("/todos/999999")
        assert res_404.status_code == 404
        assert res_404.json()["detail"] == "Todo not found"

    def test_get_non_numeric_id(self):
        assert_validation_error(client.get("/todos/abc"))

    def test_put_partial_update(self):
        todo = create_todo(title="Keep me", description="my desc", status="pending")
        res = client.put(f"/todos/{todo['id']}", json={"status": "done"})
        assert res.status_code == 200
        updated = res.json()
        assert updated["title"] == "Keep me"
        assert updated["description"] == "my desc"
        assert updated["status"] == "done"

    def test_patch_partial_update(self):
        todo = create_todo(title="Partial", description="X", status="in-progress")
        res = client.patch(f"/todos/{todo['id']}", json={"title": "Partial Updated"})
        assert res.status_code == 200
        patched = res.json()
        assert patched["title"] == "Partial Updated"
        assert patched["description"] == "X"
        assert patched["status"] == "in-progress"

    def test_update_clears_description(self):
        todo = create_todo(title="Clear", description="gone soon", status="done")
        res = client.put(f"/todos/{todo['id']}", json={"description": None})
        assert res.status_code == 200
        updated = res.json()
        assert updated["description"] is None
        assert updated["title"] == "Clear"
        assert updated["status"] == "done"

    def test_update_empty_body_keeps_record(self):
        todo = create_todo(title="Same")
        res = client.put(f"/todos/{todo['id']}", json={})
        assert res.status_code == 200
        assert res.json() == todo

    def test_update_not_found_wins_over_invalid_body(self):
        res = client.put("/todos/999999", json={"title": ""})
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"

        res_patch = client.patch("/todos/123456", json={"title": "Nope"})
        assert res_patch.status_code == 404

    def test_delete_todo(self):
        todo = create_todo(title="ToDelete")
        tid = todo["id"]

        res_del = client.delete(f"/todos/{tid}")
        assert res_del.status_code == 200
        assert res_del.json() == {"detail": "Todo deleted"}

        assert client.get(f"/todos/{tid}").status_code == 404
        res_del_again = client.delete(f"/todos/{tid}")
        assert res_del_again.status_code == 404
        assert res_del_again.json()["detail"] == "Todo not found"


class TestListAndSearch:
    def test_list_returns_array(self):
        res = client.get("/todos")
        assert res.status_code == 200
        assert isinstance(res.json(), list)

    def test_list_pagination_in_insertion_order(self):
        local = TestClient(create_app(Settings(db_path=":memory-test:")))
        ids = [local.post("/todos", json={"title": f"Task {i}"}).json()["id"] for i in range(7)]

        page1 = local.get("/todos?skip=0&limit=3").json()
        page2 = local.get("/todos?skip=3&limit=3").json()
        page3 = local.get("/todos?skip=6&limit=3").json()
        assert [t["id"] for t in page1 + page2 + page3] == ids

        # Default limit is 10
        assert len(local.get("/todos").json()) == 7
        assert local.get("/todos?skip=7").json() == []
        assert local.get("/todos?skip=100&limit=5").json() == []

    def test_list_invalid_params(self):
        assert_validation_error(client.get("/todos?limit=101"), "limit")
        assert_validation_error(client.get("/todos?limit=0"), "limit")
        assert_validation_error(client.get("/todos?skip=-1"), "skip")
        assert_validation_error(client.get("/todos?skip=abc"), "skip")

    def test_search_case_insensitive(self):
        todo = create_todo(title="Buy groceries")
        res = client.get("/todos/search?q=GROCER")
        assert res.status_code == 200
        assert todo["id"] in [t["id"] for t in res.json()]

    def test_search_no_match_is_empty_list(self):
        res = client.get("/todos/search?q=zzznomatch999")
        assert res.status_code == 200
        assert res.json() == []

    def test_search_wildcards_are_literal(self):
        hit = create_todo(title="100% done")
        create_todo(title="plain title")
        res = client.get("/todos/search", params={"q": "%"})
        assert res.status_code == 200
        found = res.json()
        assert hit["id"] in [t["id"] for t in found]
        assert all("%" in t["title"] for t in found)

    def test_search_requires_q(self):
        assert_validation_error(client.get("/todos/search"), "q")
        assert_validation_error(client.get("/todos/search?q="), "q")
        assert_validation_error(client.get("/todos/search", params={"q": "x" * 201}), "q")


class TestValidationErrors:
    def test_create_missing_title(self):
        assert_validation_error(client.post("/todos", json={}), "title")

    def test_create_empty_title(self):
        assert_validation_error(client.post("/todos", json={"title": ""}), "title")

    def test_title_stored_exactly_as_sent(self):
        assert create_todo(title="   ")["title"] == "   "
        assert create_todo(title="  keep  ")["title"] == "  keep  "

    def test_create_title_too_long(self):
        assert_validation_error(client.post("/todos", json={"title": "x" * 201}), "title")

    def test_create_description_too_long(self):
        res = client.post("/todos", json={"title": "ok", "description": "d" * 1001})
        assert_validation_error(res, "description")

    def test_create_invalid_status(self):
        assert_validation_error(client.post("/todos", json={"title": "Test", "status": "invalid"}), "status")

    def test_create_non_object_body(self):
        assert_validation_error(client.post("/todos", json=["title"]))

    def test_create_malformed_json(self):
        res = client.post("/todos", content=b"{not json", headers={"Content-Type": "application/json"})
        assert_validation_error(res)

    def test_update_invalid_status_leaves_record(self):
        todo = create_todo(title="Original")
        res = client.put(f"/todos/{todo['id']}", json={"status": "wrong"})
        assert_validation_error(res, "status")
        assert client.get(f"/todos/{todo['id']}").json() == todo

    def test_update_null_title_rejected(self):
        todo = create_todo(title="Has title")
        assert_validation_error(client.patch(f"/todos/{todo['id']}", json={"title": None}), "title")


class TestStorageFailures:
    def test_corrupt_snapshot_is_reported(self, tmp_path):
        db_file = tmp_path / "todo.db"
        db_file.write_bytes(b"corrupted snapshot bytes" * 64)
        broken = TestClient(create_app(Settings(db_path=str(db_file))))

        res = broken.get("/todos")
        assert res.status_code == 500
        assert res.json() == {"error": "DatabaseInitError", "message": "database initialization failed"}

    def test_save_failure_reports_applied_mutation(self, tmp_path):
        app = create_app(Settings(db_path=str(tmp_path / "missing" / "todo.db")))
        unsaved = TestClient(app)

        res = unsaved.post("/todos", json={"title": "not durable"})
        assert res.status_code == 500
        body = res.json()
        assert body["error"] == "DatabaseSaveError"
        assert body["message"] == "database save failed"
        assert body["applied"] is True
        assert body["result"]["title"] == "not durable"

        # Applied in memory even though it never reached disk
        res_get = unsaved.get(f"/todos/{body['result']['id']}")
        assert res_get.status_code == 200
        assert res_get.json()["title"] == "not durable"

    def test_persists_between_app_instances(self, tmp_path):
        settings = Settings(db_path=str(tmp_path / "todo.db"))
        with TestClient(create_app(settings)) as first:
            assert first.get("/").json()["persistent"] is True
            created = first.post("/todos", json={"title": "Survive restart"}).json()

        with TestClient(create_app(settings)) as second:
            assert second.get(f"/todos/{created['id']}").json() == created


class TestOutOfRangeIds:
    HUGE_ID = "9223372036854775808"

    def test_get_put_delete_are_not_found(self):
        for res in (
            client.get(f"/todos/{self.HUGE_ID}"),
            client.put(f"/todos/{self.HUGE_ID}", json={"title": ""}),
            client.patch(f"/todos/{self.HUGE_ID}", json={"title": "x"}),
            client.delete(f"/todos/{self.HUGE_ID}"),
        ):
            assert res.status_code == 404
            assert res.json()["detail"] == "Todo not found"


class TestFeatureFlags:
    def test_search_disabled_returns_404(self):
        disabled = TestClient(create_app(Settings(db_path=":memory-test:", feature_todo_search=False)))
        disabled.post("/todos", json={"title": "test me"})
        assert disabled.get("/todos/search?q=test").status_code == 404
        assert disabled.get("/todos/search").status_code == 404
        # Other routes are unaffected
        assert disabled.get("/todos").status_code == 200

    def test_search_enabled_by_default(self):
        assert Settings().feature_todo_search is True
        assert client.get("/todos/search?q=test").status_code == 200

    def test_settings_from_env(self, monkeypatch):
        from todo_api.settings import get_settings

        monkeypatch.setenv("FEATURE_TODO_SEARCH", "false")
        monkeypatch.setenv("DEBUG", "1")
        settings = get_settings()
        assert settings.feature_todo_search is False
        assert settings.debug is True

        monkeypatch.delenv("FEATURE_TODO_SEARCH")
        monkeypatch.delenv("DEBUG")
        settings = get_settings()
        assert settings.feature_todo_search is True
        assert settings.debug is False


class TestUnhandledErrors:
    def _exploding_client(self, monkeypatch, debug: bool, message: str) -> TestClient:
        app = create_app(Settings(db_path=":memory-test:", debug=debug))

        def explode(params=None):
            raise RuntimeError(message)

        monkeypatch.setattr(app.state.repository, "list", explode)
        return TestClient(app, raise_server_exceptions=False)

    def test_debug_exposes_message(self, monkeypatch):
        res = self._exploding_client(monkeypatch, True, "DB exploded").get("/todos")
        assert res.status_code == 500
        assert res.json() == {"error": "InternalServerError", "message": "DB exploded"}

    def test_production_hides_message(self, monkeypatch):
        res = self._exploding_client(monkeypatch, False, "secret db error").get("/todos")
        assert res.status_code == 500
        assert res.json() == {"error": "InternalServerError", "message": "Internal server error"}
