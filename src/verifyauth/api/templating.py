"""Server-side HTML rendering."""

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import HTMLResponse

from verifyauth.api.flash import Flash, FlashLevel, clear_flash, read_flash

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

templates = Jinja2Templates(directory=TEMPLATES_DIR)


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    *,
    status_code: int = 200,
    flash_now: tuple[FlashLevel, str] | None = None,
) -> HTMLResponse:
    """Render a template, consuming any pending flash message.

    ``flash_now`` shows a message on this response only, for forms that
    re-render instead of redirecting.
    """
    pending = read_flash(request)
    flash = Flash(level=flash_now[0], message=flash_now[1]) if flash_now else pending

    ctx: dict[str, Any] = {
        "flash": flash,
        "current_user": getattr(request.state, "current_user", None),
    }
    ctx.update(context or {})

    response = templates.TemplateResponse(request, name, ctx, status_code=status_code)
    if pending is not None:
        clear_flash(response)
    return response
