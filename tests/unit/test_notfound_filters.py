"""
Tests for the resource filter and the loop guard.
"""

from __future__ import annotations

import pytest

from src.components.notfound import (
    RequestContext,
    fallback_page_path,
    has_reentry_marker,
    is_fallback_page_request,
    is_ignorable_resource,
    is_recursive,
    resource_extension,
)

DEFAULT_EXTENSIONS = frozenset({"jpg", "gif", "png", "css", "js", "ico", "swf", "woff"})


def make_ctx(path: str, query: str = "") -> RequestContext:
    return RequestContext(url=f"http://testserver{path}", path=path, query_string=query)


# --- Resource Extension ---


class TestResourceExtension:
    """Extension comes from the last path segment only."""

    def test_simple(self) -> None:
        assert resource_extension("/img/logo.png") == "png"

    def test_no_extension(self) -> None:
        assert resource_extension("/about/team") is None

    def test_dot_in_directory_only(self) -> None:
        assert resource_extension("/v1.2/page") is None

    def test_dot_file(self) -> None:
        assert resource_extension("/.env") is None

    def test_trailing_dot(self) -> None:
        assert resource_extension("/file.") is None

    def test_query_ignored(self) -> None:
        assert resource_extension("/app.js?v=3") == "js"

    def test_last_dot_wins(self) -> None:
        assert resource_extension("/archive.tar.gz") == "gz"


# --- Resource Filter ---


class TestIsIgnorableResource:
    """Static-asset misses are ignored."""

    @pytest.mark.parametrize("path", ["/a.jpg", "/b/c.css", "/d.js", "/fonts/e.woff", "/favicon.ico"])
    def test_default_extensions(self, path: str) -> None:
        assert is_ignorable_resource(path, DEFAULT_EXTENSIONS) is True

    def test_page_not_ignored(self) -> None:
        assert is_ignorable_resource("/old/page", DEFAULT_EXTENSIONS) is False

    def test_unlisted_extension(self) -> None:
        assert is_ignorable_resource("/report.pdf", DEFAULT_EXTENSIONS) is False

    def test_mixed_case_matches_by_default(self) -> None:
        assert is_ignorable_resource("/LOGO.PNG", DEFAULT_EXTENSIONS) is True

    def test_mixed_case_strict(self) -> None:
        """Case-sensitive comparison keeps the strict behaviour available."""
        assert is_ignorable_resource("/LOGO.PNG", DEFAULT_EXTENSIONS, case_insensitive=False) is False
        assert is_ignorable_resource("/logo.png", DEFAULT_EXTENSIONS, case_insensitive=False) is True

    def test_configured_list(self) -> None:
        assert is_ignorable_resource("/map.svg", {"svg"}) is True
        assert is_ignorable_resource("/a.jpg", {"svg"}) is False

    def test_configured_list_uppercase(self) -> None:
        assert is_ignorable_resource("/map.svg", {"SVG"}) is True


# --- Loop Guard ---


class TestFallbackPagePath:
    def test_strips_tilde(self) -> None:
        assert fallback_page_path("~/notfound") == "/notfound"

    def test_strips_query(self) -> None:
        assert fallback_page_path("/errors/404?x=1") == "/errors/404"

    def test_plain(self) -> None:
        assert fallback_page_path("/notfound") == "/notfound"


class TestReentryMarker:
    def test_marker(self) -> None:
        assert has_reentry_marker("404;notfound=%2Fold") is True

    def test_bare_prefix(self) -> None:
        assert has_reentry_marker("404;") is True

    def test_marker_not_first(self) -> None:
        assert has_reentry_marker("a=1&404;notfound=x") is False

    @pytest.mark.parametrize("query", ["", None])
    def test_empty(self, query: str | None) -> None:
        assert has_reentry_marker(query) is False


class TestIsRecursive:
    """Either check trips the guard."""

    def test_reentry(self) -> None:
        assert is_recursive(make_ctx("/old", "404;notfound=%2Fold"), "~/notfound") is True

    def test_fallback_page_case_insensitive(self) -> None:
        assert is_fallback_page_request("/NOTFOUND", "~/notfound") is True
        assert is_recursive(make_ctx("/NotFound"), "~/notfound") is True

    def test_fallback_page_with_query_in_setting(self) -> None:
        assert is_recursive(make_ctx("/notfound"), "~/notfound?lang=en") is True

    def test_ordinary_request(self) -> None:
        assert is_recursive(make_ctx("/old/page", "a=1"), "~/notfound") is False

    def test_prefix_of_fallback_is_not_fallback(self) -> None:
        assert is_recursive(make_ctx("/notfound/extra"), "~/notfound") is False
