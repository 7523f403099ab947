"""Login, registration and logout pages."""

import pydantic
from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response

from src.api.auth import SiteUser, login_user, logout_user
from src.api.constants import FLASH_ERROR, FLASH_SUCCESS
from src.api.dependencies import FormData
from src.api.middleware.flash import flash
from src.api.schemas.auth import MIN_PASSWORD_LENGTH, LoginForm, RegisterForm
from src.api.templating import render
from src.core.security import hash_password, verify_password
from src.infrastructure.database.dependencies import DatabaseSession
from src.infrastructure.database.models import User
from src.infrastructure.database.users import UserRepository, normalize_email

router = APIRouter(tags=["auth"], default_response_class=HTMLResponse)

INVALID_CREDENTIALS = "Invalid email or password"
PASSWORD_MISMATCH = "Passwords do not match"
REGISTER_ERRORS = {
    "name": "Please enter your name",
    "email": "Please enter a valid email address",
    "password": f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters long",
    "confirm_password": "Please confirm your password",
}


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login", name="login")
async def login_page(request: Request) -> Response:
    return render(request, "auth/login.html")


@router.post("/login", name="login_submit")
async def login(request: Request, form_data: FormData, db: DatabaseSession) -> Response:
    """Authenticate with email and password."""
    try:
        form = LoginForm.model_validate(form_data)
    except pydantic.ValidationError:
        flash(request, FLASH_ERROR, INVALID_CREDENTIALS)
        return redirect("/auth/login")

    user = await UserRepository(db).get_by_email(form.email)
    if user is None or not await run_in_threadpool(
        verify_password, form.password, user.password_hash
    ):
        flash(request, FLASH_ERROR, INVALID_CREDENTIALS)
        return redirect("/auth/login")

    login_user(request, SiteUser.from_model(user))
    flash(request, FLASH_SUCCESS, f"Welcome back, {user.name}")
    return redirect("/admin/" if user.is_admin else "/")


@router.get("/register", name="register")
async def register_page(request: Request) -> Response:
    return render(request, "auth/register.html")


@router.post("/register", name="register_submit")
async def register(
    request: Request, form_data: FormData, db: DatabaseSession
) -> Response:
    """Create an account. New accounts are never administrators."""
    try:
        form = RegisterForm.model_validate(form_data)
    except pydantic.ValidationError as e:
        failed_fields = dict.fromkeys(
            str(error["loc"][0]) if error["loc"] else "" for error in e.errors()
        )
        for field in failed_fields:
            flash(request, FLASH_ERROR, REGISTER_ERRORS.get(field, PASSWORD_MISMATCH))
        return redirect("/auth/register")

    users = UserRepository(db)
    email = normalize_email(form.email)
    if await users.get_by_email(email) is not None:
        flash(request, FLASH_ERROR, "An account with that email already exists")
        return redirect("/auth/register")

    password_hash = await run_in_threadpool(hash_password, form.password)
    await users.create(
        User(name=form.name, email=email, password_hash=password_hash, is_admin=False)
    )
    flash(request, FLASH_SUCCESS, "Registration successful, you can now log in")
    return redirect("/auth/login")


@router.get("/logout", name="logout")
async def logout(request: Request) -> Response:
    logout_user(request)
    flash(request, FLASH_SUCCESS, "You are logged out")
    return redirect("/auth/login")
