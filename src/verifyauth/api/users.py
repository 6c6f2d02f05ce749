"""Registration, profile and email verification pages."""

from typing import Annotated

from fastapi import APIRouter, Form, Request, status

from verifyauth.api.deps import CurrentUserOptional, EmailServiceDep, LockedPathUser, PathUser, SessionDep
from verifyauth.api.flash import redirect
from verifyauth.api.templating import render
from verifyauth.models.user import UserRead
from verifyauth.services.auth import (
    AlreadyVerifiedError,
    DuplicateEmailError,
    InvalidVerificationCodeError,
    RegistrationError,
)
from verifyauth.services.users import confirm_verification, register_user, resend_verification_code
from verifyauth.services.validation import RegistrationForm, ValidationResult

router = APIRouter()


def render_registration(
    request: Request,
    form: RegistrationForm | None = None,
    errors: ValidationResult | None = None,
    status_code: int = status.HTTP_200_OK,
):
    form = form or RegistrationForm()
    return render(
        request,
        "users/new.html",
        {
            # Never echo passwords back into the form
            "form": {"name": form.name, "email": form.email},
            "errors": errors or ValidationResult(),
        },
        status_code=status_code,
    )


@router.get("/")
@router.get("/users/new")
async def new_user(request: Request, _current: CurrentUserOptional):
    """Registration form."""
    return render_registration(request)


@router.post("/users")
async def create_user(
    request: Request,
    session: SessionDep,
    mailer: EmailServiceDep,
    name: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    password_confirmation: Annotated[str, Form()] = "",
):
    """Create an unverified user and email them a verification code."""
    form = RegistrationForm(
        name=name,
        email=email,
        password=password,
        password_confirmation=password_confirmation,
    )
    try:
        user = await register_user(session, mailer, form)
    except RegistrationError as e:
        return render_registration(request, form, e.result, status_code=422)
    except DuplicateEmailError:
        errors = ValidationResult()
        errors.add("email", "has already been taken")
        return render_registration(request, form, errors, status_code=422)

    return redirect(f"/users/{user.id}/verify", notice="Code sent to your email.")


@router.get("/users/{user_id}")
async def show_user(request: Request, user: PathUser):
    """Profile page."""
    return render(request, "users/show.html", {"user": UserRead.model_validate(user)})


@router.get("/users/{user_id}/verify")
async def verify_user(request: Request, user: PathUser):
    """Verification code entry form."""
    return render(request, "users/verify.html", {"user": UserRead.model_validate(user)})


@router.post("/users/{user_id}/confirm_verification")
async def confirm_user_verification(
    request: Request,
    session: SessionDep,
    user: LockedPathUser,
    verification_code: Annotated[str, Form()] = "",
):
    """Check the submitted code and mark the account verified."""
    try:
        await confirm_verification(session, user, verification_code)
    except InvalidVerificationCodeError as e:
        return render(
            request,
            "users/verify.html",
            {"user": UserRead.model_validate(user)},
            status_code=422,
            flash_now=("alert", str(e)),
        )

    return redirect("/sessions/new", notice="Account verified! Log in.")


@router.post("/users/{user_id}/resend_verification_code")
async def resend_user_verification_code(
    session: SessionDep,
    mailer: EmailServiceDep,
    user: LockedPathUser,
):
    """Issue and email a fresh verification code."""
    try:
        await resend_verification_code(session, mailer, user)
    except AlreadyVerifiedError as e:
        return redirect("/sessions/new", notice=str(e))

    return redirect(f"/users/{user.id}/verify", notice="New code sent to your email.")
