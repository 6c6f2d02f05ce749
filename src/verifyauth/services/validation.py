"""Registration form validation.

Each check is a pure function returning the error messages for one field.
``validate_registration`` runs them all and collects the results so the
form can be re-rendered with every problem at once.
"""

from dataclasses import dataclass, field

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


class RegistrationForm(BaseModel):
    """Raw registration input as submitted by the browser."""

    name: str = ""
    email: str = ""
    password: str = ""
    password_confirmation: str = ""


@dataclass
class ValidationResult:
    """Field name -> list of error messages."""

    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.setdefault(field_name, []).append(message)

    def extend(self, field_name: str, messages: list[str]) -> None:
        for message in messages:
            self.add(field_name, message)

    def full_messages(self) -> list[str]:
        """Human-readable messages, e.g. ``"Email is invalid"``."""
        return [
            f"{field_name.replace('_', ' ').capitalize()} {message}"
            for field_name, messages in self.errors.items()
            for message in messages
        ]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_name(name: str) -> list[str]:
    if not name.strip():
        return ["can't be blank"]
    if len(name.strip()) > 255:
        return ["is too long (maximum is 255 characters)"]
    return []


def validate_email_format(email: str) -> list[str]:
    email = normalize_email(email)
    if not email:
        return ["can't be blank"]
    if len(email) > 255:
        return ["is too long (maximum is 255 characters)"]
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return ["is invalid"]
    return []


def validate_password(password: str) -> list[str]:
    if not password:
        return ["can't be blank"]
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return [f"is too long (maximum is {MAX_PASSWORD_BYTES} bytes)"]
    return []


def validate_password_confirmation(password: str, confirmation: str) -> list[str]:
    if password != confirmation:
        return ["doesn't match Password"]
    return []


def validate_registration(form: RegistrationForm) -> ValidationResult:
    """Run every field check against a registration form."""
    result = ValidationResult()
    result.extend("name", validate_name(form.name))
    result.extend("email", validate_email_format(form.email))
    result.extend("password", validate_password(form.password))
    result.extend(
        "password_confirmation",
        validate_password_confirmation(form.password, form.password_confirmation),
    )
    return result
