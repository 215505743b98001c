"""
Blog API Backend - HTTP API Tests
==================================

What:  End-to-end tests through the full application stack.
How:   HTTPX AsyncClient against the ASGI app, backed by a temporary SQLite
       database and a temporary transaction log file.

What we test:
    ✅ Create → read → update → delete round trip
    ✅ Validation failures return 400 and never touch storage
    ✅ Missing ids: GET returns null, DELETE returns 204
    ✅ Unsupported methods return 501, unknown routes a plain-text 404
    ✅ CORS headers on every response
    ✅ One transaction log line per post request
    ✅ Storage failures map to 500 / 503 (with Retry-After)
    ✅ Unexpected exceptions still carry CORS and request-id headers
    ✅ Health check
"""

import json
import logging
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text

from blog_api.config import Settings
from blog_api.main import create_app


async def create(client, **fields):
    response = await client.post("/posts", json=fields)
    assert response.status_code == 200, response.text
    return response.json()["inserted_id"]


async def log_lines(app):
    await app.state.transaction_log.flush()
    path = Path(app.state.settings.transaction_log_path)
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestPostsCrud:
    """Happy-path CRUD through HTTP."""

    @pytest.mark.asyncio
    async def test_create_then_get(self, test_client):
        response = await test_client.post("/posts", json={"title": "Hello", "content": "World"})

        assert response.status_code == 200
        body = response.json()
        assert body["affected_rows"] == 1
        post_id = body["inserted_id"]
        assert isinstance(post_id, int)

        response = await test_client.get(f"/posts/{post_id}")
        assert response.status_code == 200
        assert response.json() == {
            "id": post_id,
            "title": "Hello",
            "content": "World",
            "image": None,
        }

    @pytest.mark.asyncio
    async def test_list_posts(self, test_client, sample_image_uri):
        assert (await test_client.get("/posts")).json() == []

        await create(test_client, title="One", content="1")
        await create(test_client, title="Two", content="2", image=sample_image_uri)

        response = await test_client.get("/posts")
        assert response.status_code == 200
        posts = response.json()
        assert sorted(p["title"] for p in posts) == ["One", "Two"]
        assert {p["title"]: p["image"] for p in posts}["Two"] == sample_image_uri

    @pytest.mark.asyncio
    async def test_get_missing_returns_null(self, test_client):
        response = await test_client.get("/posts/999999")

        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self, test_client):
        post_id = await create(test_client, title="Old", content="Old body")

        response = await test_client.put(
            f"/posts/{post_id}", json={"title": "New", "content": "New body"}
        )

        assert response.status_code == 200
        assert response.json() == {"inserted_id": None, "affected_rows": 1}
        post = (await test_client.get(f"/posts/{post_id}")).json()
        assert (post["title"], post["content"]) == ("New", "New body")

    @pytest.mark.asyncio
    async def test_put_without_image_keeps_image(self, test_client, sample_image_uri):
        post_id = await create(test_client, title="Pic", content="Body", image=sample_image_uri)

        await test_client.put(f"/posts/{post_id}", json={"title": "Pic 2", "content": "Body 2"})

        post = (await test_client.get(f"/posts/{post_id}")).json()
        assert post["image"] == sample_image_uri

    @pytest.mark.asyncio
    async def test_put_missing_reports_zero_rows(self, test_client):
        response = await test_client.put("/posts/999999", json={"title": "T", "content": "C"})

        assert response.status_code == 200
        assert response.json()["affected_rows"] == 0

    @pytest.mark.asyncio
    async def test_delete(self, test_client):
        post_id = await create(test_client, title="Bye", content="Gone")

        response = await test_client.delete(f"/posts/{post_id}")

        assert response.status_code == 204
        assert response.content == b""
        assert (await test_client.get(f"/posts/{post_id}")).json() is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_204(self, test_client):
        response = await test_client.delete("/posts/999999")
        assert response.status_code == 204


class TestPostsValidation:
    """Invalid input is rejected with 400."""

    @pytest.mark.asyncio
    async def test_empty_title(self, test_client):
        response = await test_client.post("/posts", json={"title": "", "content": "World"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert "title" in body["message"]
        assert (await test_client.get("/posts")).json() == []

    @pytest.mark.asyncio
    async def test_missing_content(self, test_client):
        response = await test_client.post("/posts", json={"title": "Hello"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bad_image(self, test_client):
        response = await test_client.post(
            "/posts", json={"title": "Hello", "content": "World", "image": "https://x/cat.png"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert (await test_client.get("/posts")).json() == []

    @pytest.mark.asyncio
    async def test_bad_image_on_update_leaves_post_unchanged(self, test_client):
        post_id = await create(test_client, title="Keep", content="Me")

        response = await test_client.put(
            f"/posts/{post_id}", json={"title": "X", "content": "Y", "image": "nope"}
        )

        assert response.status_code == 400
        post = (await test_client.get(f"/posts/{post_id}")).json()
        assert post["title"] == "Keep"

    @pytest.mark.asyncio
    async def test_malformed_json(self, test_client):
        response = await test_client.post(
            "/posts",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_wrong_field_type(self, test_client):
        response = await test_client.post("/posts", json={"title": 5, "content": "World"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("post_id", ["abc", "1.5", "-3", "99999999999"])
    async def test_invalid_id(self, test_client, post_id):
        response = await test_client.get(f"/posts/{post_id}")

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "id"


class TestRoutingAndHeaders:
    """Method filtering, unknown routes and CORS."""

    @pytest.mark.asyncio
    async def test_patch_is_not_implemented(self, test_client):
        response = await test_client.patch("/posts/1", json={"title": "T"})

        assert response.status_code == 501
        assert response.text == "Not Implemented"

    @pytest.mark.asyncio
    async def test_unsupported_method_on_unknown_path(self, test_client):
        response = await test_client.request("HEAD", "/nowhere")
        assert response.status_code == 501

    @pytest.mark.asyncio
    async def test_unknown_path_is_plain_text_404(self, test_client):
        response = await test_client.get("/nowhere")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "404 Not Found: the requested endpoint does not exist."

    @pytest.mark.asyncio
    async def test_wrong_method_for_path_is_404(self, test_client):
        response = await test_client.delete("/posts")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cors_headers_without_origin(self, test_client):
        response = await test_client.get("/posts")

        assert response.headers["access-control-allow-origin"] == "*"
        assert "Content-Type" in response.headers["access-control-allow-headers"]

    @pytest.mark.asyncio
    async def test_cors_headers_on_404(self, test_client):
        response = await test_client.get("/nowhere", headers={"Origin": "http://example.com"})
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight(self, test_client):
        response = await test_client.options(
            "/posts",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_request_id_header(self, test_client):
        response = await test_client.get("/posts", headers={"X-Request-ID": "req-123"})
        assert response.headers["x-request-id"] == "req-123"

    @pytest.mark.asyncio
    async def test_unsafe_request_id_is_replaced(self, test_client):
        response = await test_client.get("/posts", headers={"X-Request-ID": "a b<script>"})

        rid = response.headers["x-request-id"]
        assert rid != "a b<script>"
        assert len(rid) == 12

    @pytest.mark.asyncio
    async def test_trailing_slash_is_plain_text_404(self, test_client):
        response = await test_client.get("/posts/")

        assert response.status_code == 404
        assert response.text == "404 Not Found: the requested endpoint does not exist."

    @pytest.mark.asyncio
    async def test_access_log_names_route_template_and_post_id(self, test_client, caplog):
        post_id = await create(test_client, title="Hello", content="World")

        with caplog.at_level(logging.INFO, logger="blog_api.access"):
            await test_client.get(f"/posts/{post_id}")
            await test_client.get("/nowhere")

        access = [r for r in caplog.records if r.name == "blog_api.access"]
        assert [r.endpoint for r in access] == ["/posts/{post_id}", "/nowhere"]
        assert access[0].post_id == str(post_id)
        assert access[0].levelno == logging.INFO
        assert access[1].levelno == logging.WARNING


class TestTransactionLogging:
    """Every post request leaves exactly one log line."""

    @pytest.mark.asyncio
    async def test_one_line_per_request(self, test_client, test_app):
        post_id = await create(test_client, title="Hello", content="World")
        await test_client.get(f"/posts/{post_id}")
        await test_client.get("/posts")
        await test_client.delete(f"/posts/{post_id}")

        lines = await log_lines(test_app)

        assert [(line["method"], line["endpoint"]) for line in lines] == [
            ("POST", "/posts"),
            ("GET", "/posts/{post_id}"),
            ("GET", "/posts"),
            ("DELETE", "/posts/{post_id}"),
        ]
        for line in lines:
            assert set(line) == {
                "timestamp", "endpoint", "method", "path_params", "payload", "status", "response",
            }

    @pytest.mark.asyncio
    async def test_record_contents(self, test_client, test_app):
        post_id = await create(test_client, title="Hello", content="World")
        await test_client.delete(f"/posts/{post_id}")

        created, deleted = await log_lines(test_app)

        assert created["payload"] == {"title": "Hello", "content": "World"}
        assert created["status"] == 200
        assert created["response"] == {"inserted_id": post_id, "affected_rows": 1}
        assert created["timestamp"].endswith("+00:00")

        assert deleted["path_params"] == {"post_id": str(post_id)}
        assert deleted["status"] == 204
        assert deleted["response"] == {"inserted_id": None, "affected_rows": 1}

    @pytest.mark.asyncio
    async def test_rejected_request_is_logged(self, test_client, test_app):
        await test_client.post("/posts", json={"title": "", "content": "World"})

        (line,) = await log_lines(test_app)

        assert line["status"] == 400
        assert line["response"]["error"] == "validation_error"
        assert line["payload"] == {"title": "", "content": "World"}

    @pytest.mark.asyncio
    async def test_query_params_logged_when_no_body(self, test_client, test_app):
        await test_client.get("/posts", params={"page": "2"})

        (line,) = await log_lines(test_app)
        assert line["payload"] == {"page": "2"}

    @pytest.mark.asyncio
    async def test_non_post_routes_not_logged(self, test_client, test_app):
        await test_client.get("/health")
        await test_client.get("/nowhere")
        await test_client.patch("/posts/1")

        assert await log_lines(test_app) == []


@pytest_asyncio.fixture
async def single_connection_app(tmp_path):
    """Application whose pool holds one connection and gives up after 0.2s."""
    app = create_app(
        Settings(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'busy.db'}",
            db_pool_size=1,
            db_max_overflow=0,
            db_pool_timeout=0.2,
            db_auto_create=True,
            transaction_log_path=str(tmp_path / "log.txt"),
            log_level="WARNING",
        )
    )
    async with app.router.lifespan_context(app):
        yield app


class TestStorageFailures:
    """Storage errors surface as 500 / 503 JSON bodies and are logged."""

    @pytest.mark.asyncio
    async def test_statement_failure_is_500(self, test_client, test_app):
        async with test_app.state.database.engine.begin() as conn:
            await conn.execute(text("DROP TABLE posts"))

        response = await test_client.get("/posts")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert body["details"] == {"operation": "list_posts", "error_type": "OperationalError"}
        assert "posts" not in body["message"]

        (line,) = await log_lines(test_app)
        assert line["status"] == 500
        assert line["response"]["error"] == "server_error"

    @pytest.mark.asyncio
    async def test_pool_exhaustion_is_503_with_retry_after(self, single_connection_app):
        transport = ASGITransport(app=single_connection_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            # Hold the only pooled connection for the duration of the request
            async with single_connection_app.state.database.engine.connect():
                response = await client.get("/posts")

            assert response.status_code == 503
            assert response.headers["retry-after"] == "1"
            body = response.json()
            assert body["error"] == "service_unavailable"
            assert body["details"]["retry_after"] == 1

            # Connection released: the same app serves again
            assert (await client.get("/posts")).status_code == 200

        first, second = await log_lines(single_connection_app)
        assert (first["status"], first["response"]["error"]) == (503, "service_unavailable")
        assert second["status"] == 200


class TestUnexpectedErrors:
    """Exceptions outside the error taxonomy still produce a complete 500."""

    @pytest.mark.asyncio
    async def test_unexpected_exception_keeps_cors_and_request_id(self, test_app, monkeypatch):
        async def explode():
            raise RuntimeError("boom")

        monkeypatch.setattr(test_app.state.post_service, "list_posts", explode)

        transport = ASGITransport(app=test_app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(
                "/posts", headers={"Origin": "http://example.com", "X-Request-ID": "req-500"}
            )

        assert response.status_code == 500
        assert response.json() == {
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again or contact support.",
            "details": None,
            "request_id": "req-500",
        }
        assert response.headers["access-control-allow-origin"] == "*"
        assert "Content-Type" in response.headers["access-control-allow-headers"]
        assert response.headers["x-request-id"] == "req-500"

        (line,) = await log_lines(test_app)
        assert line["status"] == 500


class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_healthy(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_unhealthy_when_database_unreachable(self, test_client, test_app, monkeypatch):
        async def broken_ping():
            raise OSError("connection refused")

        monkeypatch.setattr(test_app.state.database, "ping", broken_ping)

        response = await test_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
