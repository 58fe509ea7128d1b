"""
Not-found fallback page.

Served in place of failed requests by NotFoundMiddleware. The original
request URL arrives in the `404;notfound=` query marker.
"""

from __future__ import annotations

import html

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from src.components.notfound import NOT_FOUND_PARAM

router = APIRouter()


def original_url(request: Request) -> str:
    """Failed URL carried by the re-entry marker, or ""."""
    return request.query_params.get(NOT_FOUND_PARAM, "")


def render_not_found_page(url: str) -> str:
    """Render the not-found HTML page."""
    detail = ""
    if url:
        detail = f"<p>The page <code>{html.escape(url)}</code> could not be found.</p>"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <meta name="robots" content="noindex" />
    <title>Page not found</title>
</head>
<body>
    <main>
        <h1>Page not found</h1>
        {detail}
        <p><a href="/">Go to the home page</a></p>
    </main>
</body>
</html>"""


@router.get(
    "/notfound",
    response_class=HTMLResponse,
    summary="Not-found page",
    description="Fallback page shown when no redirect exists for a missing URL.",
)
def not_found_page(request: Request) -> HTMLResponse:
    """
    Serve the not-found page.

    Always answers 404; when reached through a transfer the middleware
    forces the status as well.
    """
    return HTMLResponse(content=render_not_found_page(original_url(request)), status_code=404)
