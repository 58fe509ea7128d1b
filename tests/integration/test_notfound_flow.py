"""
End-to-end interception through NotFoundMiddleware on a FastAPI app.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from src.api.routes import notfound_page
from src.components.notfound import (
    NotFoundHandler,
    PageNotFoundError,
    SettingsResolver,
    create_not_found_handler,
)
from src.components.redirects import (
    CustomRedirectCollection,
    RedirectRecord,
    RedirectState,
    RedirectStore,
)
from src.shell.http.notfound_middleware import NotFoundMiddleware, describe_exception

# --- Test doubles ---


class DictConfigSource:
    def __init__(self, values: dict[str, str] | None = None) -> None:
        self.values = dict(values or {})

    def get(self, key: str) -> str | None:
        return self.values.get(key)


class MockMissLogger:
    def __init__(self) -> None:
        self.entries: list[tuple[str, str]] = []

    def log_request(self, url: str, referrer: str) -> None:
        self.entries.append((url, referrer))


class ExplodingHandler:
    def handle(self, ctx, host):  # type: ignore[no-untyped-def]
        raise RuntimeError("handler bug")


# --- App ---


def build_app(get_handler) -> FastAPI:  # type: ignore[no-untyped-def]
    app = FastAPI()
    app.include_router(notfound_page.router)

    @app.get("/new/page")
    def new_page() -> dict[str, str]:
        return {"page": "new"}

    @app.post("/forms/submit")
    def submit() -> dict[str, str]:
        raise HTTPException(status_code=404)

    @app.get("/files/{name}")
    def read_file(name: str) -> dict[str, str]:
        raise FileNotFoundError(name)

    @app.get("/articles/{slug}")
    def article(slug: str) -> dict[str, str]:
        try:
            raise PageNotFoundError(slug)
        except PageNotFoundError as e:
            raise RuntimeError("render failed") from e

    @app.get("/boom")
    def boom() -> dict[str, str]:
        raise RuntimeError("boom")

    @app.get("/forbidden")
    def forbidden() -> dict[str, str]:
        raise HTTPException(status_code=403)

    @app.get("/api/items/{item_id}")
    def api_item(item_id: str) -> dict[str, str]:
        raise HTTPException(status_code=404, detail="No such item")

    app.add_middleware(NotFoundMiddleware, get_handler=get_handler, skip_prefixes=("/api/",))
    return app


@pytest.fixture
def miss_logger() -> MockMissLogger:
    return MockMissLogger()


@pytest.fixture
def config() -> DictConfigSource:
    return DictConfigSource()


@pytest.fixture
def handler(config: DictConfigSource, miss_logger: MockMissLogger) -> NotFoundHandler:
    store = RedirectStore(
        CustomRedirectCollection(
            [
                RedirectRecord("/old/page", "/new/page"),
                RedirectRecord("/retired", "/campaigns", state=RedirectState.DELETED),
                RedirectRecord("/loop", "/loop"),
            ]
        )
    )
    return create_not_found_handler(
        settings=SettingsResolver(config),
        store=store,
        describe_failure=describe_exception,
        miss_logger=miss_logger,
    )


@pytest.fixture
def client(handler: NotFoundHandler) -> TestClient:
    return TestClient(build_app(lambda: handler), raise_server_exceptions=False)


def assert_fallback(response, url: str) -> None:  # type: ignore[no-untyped-def]
    assert response.status_code == 404
    assert "text/html" in response.headers["content-type"]
    assert "Page not found" in response.text
    assert url in response.text


class TestRedirects:
    def test_known_url_redirects(self, client: TestClient, miss_logger: MockMissLogger) -> None:
        response = client.get("/old/page", follow_redirects=False)

        assert response.status_code == 301
        assert response.headers["location"] == "/new/page"
        assert miss_logger.entries == []

    def test_redirect_followed(self, client: TestClient) -> None:
        response = client.get("/Old/Page/")
        assert response.status_code == 200
        assert response.json() == {"page": "new"}

    def test_unsaved_redirect_shows_fallback(
        self, client: TestClient, miss_logger: MockMissLogger
    ) -> None:
        response = client.get("/retired", follow_redirects=False)

        assert_fallback(response, "/retired")
        assert miss_logger.entries == [("/retired", "")]

    def test_self_redirect_shows_fallback(self, client: TestClient) -> None:
        response = client.get("/loop", follow_redirects=False)
        assert_fallback(response, "/loop")


class TestFallback:
    def test_unknown_url(self, client: TestClient, miss_logger: MockMissLogger) -> None:
        response = client.get(
            "/old/missing?x=1",
            headers={"referer": "http://testserver/blog"},
        )

        assert_fallback(response, "/old/missing?x=1")
        assert miss_logger.entries == [("/old/missing?x=1", "/blog")]

    def test_foreign_referrer_kept(self, client: TestClient, miss_logger: MockMissLogger) -> None:
        client.get("/nowhere", headers={"referer": "https://search.example/?q=x"})
        assert miss_logger.entries == [("/nowhere", "https://search.example/?q=x")]

    def test_post_served_as_get(self, client: TestClient) -> None:
        response = client.post("/forms/submit", json={"a": 1})
        assert_fallback(response, "/forms/submit")

    def test_logging_off(
        self, client: TestClient, config: DictConfigSource, miss_logger: MockMissLogger
    ) -> None:
        config.values["logging"] = "Off"
        response = client.get("/nowhere")

        assert_fallback(response, "/nowhere")
        assert miss_logger.entries == []


class TestCapturedExceptions:
    def test_file_not_found(self, client: TestClient) -> None:
        assert_fallback(client.get("/files/report"), "/files/report")

    def test_wrapped_route_not_found(self, client: TestClient) -> None:
        assert_fallback(client.get("/articles/gone"), "/articles/gone")

    def test_unrelated_exception_untouched(self, client: TestClient) -> None:
        assert client.get("/boom").status_code == 500

    def test_unrelated_exception_raises(self, handler: NotFoundHandler) -> None:
        strict = TestClient(build_app(lambda: handler))
        with pytest.raises(RuntimeError, match="boom"):
            strict.get("/boom")

    def test_other_status_untouched(self, client: TestClient) -> None:
        assert client.get("/forbidden").status_code == 403


class TestPassThrough:
    def test_found_page(self, client: TestClient) -> None:
        assert client.get("/new/page").status_code == 200

    def test_static_resource(self, client: TestClient, miss_logger: MockMissLogger) -> None:
        response = client.get("/img/logo.png")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}
        assert miss_logger.entries == []

    def test_fallback_page_direct(self, client: TestClient, miss_logger: MockMissLogger) -> None:
        response = client.get("/notfound")

        assert_fallback(response, "")
        assert miss_logger.entries == []

    def test_reentry_marker(self, client: TestClient) -> None:
        response = client.get("/some/page?404;notfound=%2Fsome%2Fpage")
        assert response.json() == {"detail": "Not Found"}

    def test_skipped_prefix(self, client: TestClient) -> None:
        response = client.get("/api/items/7")

        assert response.status_code == 404
        assert response.json() == {"detail": "No such item"}

    def test_handler_off(self, config: DictConfigSource, miss_logger: MockMissLogger) -> None:
        config.values["handler_mode"] = "Off"
        store = RedirectStore(CustomRedirectCollection([RedirectRecord("/old/page", "/new/page")]))
        handler = create_not_found_handler(
            settings=SettingsResolver(config),
            store=store,
            describe_failure=describe_exception,
            miss_logger=miss_logger,
        )
        client = TestClient(build_app(lambda: handler))

        response = client.get("/old/page", follow_redirects=False)

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    def test_remote_only_with_remote_client(self, config: DictConfigSource) -> None:
        config.values["handler_mode"] = "RemoteOnly"
        handler = create_not_found_handler(
            settings=SettingsResolver(config),
            store=RedirectStore(),
            describe_failure=describe_exception,
            is_local=lambda host: False,
        )
        client = TestClient(build_app(lambda: handler))

        assert_fallback(client.get("/nowhere"), "/nowhere")

    def test_remote_only_with_local_client(self, config: DictConfigSource) -> None:
        config.values["handler_mode"] = "RemoteOnly"
        handler = create_not_found_handler(
            settings=SettingsResolver(config),
            store=RedirectStore(),
            describe_failure=describe_exception,
            is_local=lambda host: True,
        )
        client = TestClient(build_app(lambda: handler))

        assert client.get("/nowhere").json() == {"detail": "Not Found"}

    def test_handler_failure_leaves_response(self) -> None:
        client = TestClient(build_app(lambda: ExplodingHandler()))

        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}
