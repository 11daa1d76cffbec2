from __future__ import annotations

import logging

from ..backends.base import DataBackend
from ..errors import Conflict, InvalidCredentials, ValidationFailed
from ..schemas.account import LoginInput, RegisterInput, Session
from .validation import validate_model

logger = logging.getLogger(__name__)

_FORM_MESSAGES = {
    "email": "Please enter a valid email address",
    "password": "Password must be at least 6 characters",
    "name": "Name must be at least 2 characters",
    "role": "Please choose buyer, seller or station",
}


def _first_error(errors: dict[str, str]) -> ValidationFailed:
    # the form shows one message at a time
    field, message = next(iter(errors.items()))
    return ValidationFailed({field: message}, message=message)


async def sign_in(backend: DataBackend, raw: dict) -> Session:
    result = validate_model(LoginInput, raw, _FORM_MESSAGES)
    if not result.ok:
        raise _first_error(result.errors)
    form: LoginInput = result.value
    try:
        session = await backend.sign_in(form.email, form.password)
    except InvalidCredentials as e:
        if e.message == "Invalid login credentials":
            raise InvalidCredentials() from e
        raise
    logger.info("signed in user_id=%s", session.user_id)
    return session


async def sign_up(backend: DataBackend, raw: dict) -> Session:
    result = validate_model(RegisterInput, raw, _FORM_MESSAGES)
    if not result.ok:
        raise _first_error(result.errors)
    form: RegisterInput = result.value
    try:
        session = await backend.sign_up(form.email, form.password, {
            "full_name": form.name,
            "phone": form.phone or "",
            "role": form.role,
        })
    except Conflict as e:
        if "already registered" in e.message:
            raise Conflict("An account with this email already exists. Please sign in instead.") from e
        raise
    logger.info("account registered user_id=%s role=%s", session.user_id, form.role)
    return session


async def sign_out(backend: DataBackend, session: Session) -> None:
    await backend.sign_out(session)
