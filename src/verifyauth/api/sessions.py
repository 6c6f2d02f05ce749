"""Login and logout."""

from typing import Annotated

from fastapi import APIRouter, Form, Request

from verifyauth.api.deps import CurrentUserOptional, SessionDep
from verifyauth.api.flash import redirect
from verifyauth.api.templating import render
from verifyauth.config import settings
from verifyauth.services.auth import (
    InvalidCredentialsError,
    UnverifiedAccountError,
    authenticate,
    create_session_token,
)

router = APIRouter()


@router.get("/sessions/new")
async def new_session(request: Request, _current: CurrentUserOptional):
    """Login form."""
    return render(request, "sessions/new.html", {"email": ""})


@router.post("/sessions")
async def create_session(
    request: Request,
    session: SessionDep,
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
):
    """Log in with email and password.

    Only verified accounts get a session; unverified ones are sent back to
    the verification page.
    """
    try:
        user = await authenticate(session, email, password)
    except UnverifiedAccountError as e:
        return redirect(f"/users/{e.user.id}/verify", alert=str(e))
    except InvalidCredentialsError as e:
        return render(
            request,
            "sessions/new.html",
            {"email": email},
            status_code=422,
            flash_now=("alert", str(e)),
        )

    response = redirect(f"/users/{user.id}", notice="Logged in successfully!")
    response.set_cookie(
        settings.session_cookie_name,
        create_session_token(user),
        max_age=settings.session_expiration_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="lax",
    )
    return response


@router.api_route("/logout", methods=["DELETE", "POST"])
async def logout():
    """Drop the session cookie. Safe to call without a session."""
    response = redirect("/sessions/new", notice="You have logged out!")
    response.delete_cookie(settings.session_cookie_name)
    return response
