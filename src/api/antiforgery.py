"""
Anti-Forgery Tokens
=============================================================================
CONCEPT: Synchronizer Token Pattern (CSRF protection)

A malicious page can make a victim's browser POST to /employees/5/delete,
and the browser will attach the victim's cookies. It cannot, however, read
pages from our origin, so it cannot know a random value we embedded in
our own forms.

  1. GET  form   → a random token is stored in the signed session cookie
                   and rendered as <input type="hidden" name="csrf_token">
  2. POST form   → the posted token must equal the session token
                   (compared in constant time), otherwise 400

The session cookie is signed by Starlette's SessionMiddleware, so the
token cannot be forged client-side either.
=============================================================================
"""

import hmac
import secrets

from fastapi import HTTPException, Request

from src.observability.logging import get_logger

logger = get_logger(__name__)

CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "csrf_token"


def get_csrf_token(request: Request) -> str:
    """Return this session's token, creating one on first use."""
    token = request.session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        request.session[CSRF_SESSION_KEY] = token
    return token


async def verify_csrf_token(request: Request) -> None:
    """
    FastAPI dependency for every form POST.

    Starlette caches the parsed form on the request, so the route can call
    `await request.form()` again without re-reading the body.
    """
    form = await request.form()
    submitted = form.get(CSRF_FORM_FIELD)
    expected = request.session.get(CSRF_SESSION_KEY)

    if not submitted or not expected or not hmac.compare_digest(str(submitted), expected):
        logger.warning("antiforgery_rejected", path=request.url.path)
        raise HTTPException(status_code=400, detail="Invalid or missing anti-forgery token")
