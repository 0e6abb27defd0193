"""Jinja2 view rendering shared by the HTML routes."""

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates

from src.api.antiforgery import get_csrf_token
from src.config import settings

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals["app_name"] = settings.app_name


def render(request: Request, name: str, context: dict | None = None, status_code: int = 200):
    """Render `name` with the session's anti-forgery token in the context."""
    context = dict(context or {})
    context.setdefault("csrf_token", get_csrf_token(request))
    return templates.TemplateResponse(request, name, context, status_code=status_code)
