"""One-shot flash messages carried across a redirect in a signed cookie."""

from datetime import UTC, datetime, timedelta
from typing import Literal

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from jose import JWTError, jwt
from pydantic import BaseModel

from verifyauth.config import settings

FLASH_TTL = timedelta(minutes=5)

FlashLevel = Literal["notice", "alert"]


class Flash(BaseModel):
    """A message shown once on the next rendered page."""

    level: FlashLevel
    message: str


def set_flash(response: Response, level: FlashLevel, message: str) -> None:
    """Attach a flash message to the response for the next page view."""
    payload = {
        "level": level,
        "message": message,
        "exp": datetime.now(UTC) + FLASH_TTL,
    }
    token = jwt.encode(payload, settings.session_secret, algorithm=settings.jwt_algorithm)
    response.set_cookie(
        settings.flash_cookie_name,
        token,
        max_age=int(FLASH_TTL.total_seconds()),
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )


def read_flash(request: Request) -> Flash | None:
    """Decode the pending flash message, ignoring tampered or expired cookies."""
    token = request.cookies.get(settings.flash_cookie_name)
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return Flash.model_validate(payload)


def clear_flash(response: Response) -> None:
    response.delete_cookie(settings.flash_cookie_name)


def redirect(
    url: str,
    *,
    notice: str | None = None,
    alert: str | None = None,
) -> RedirectResponse:
    """303 redirect with an optional flash message, like a form POST should.

    Only one message fits in the flash cookie, so ``notice`` and ``alert``
    are mutually exclusive.
    """
    if notice and alert:
        raise ValueError("redirect() takes either a notice or an alert, not both")
    response = RedirectResponse(url, status_code=303)
    if notice:
        set_flash(response, "notice", notice)
    elif alert:
        set_flash(response, "alert", alert)
    return response
