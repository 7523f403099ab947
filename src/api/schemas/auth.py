"""Login and registration form schemas."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_PASSWORD_LENGTH = 8


class LoginForm(BaseModel):
    """Credentials posted to the login page."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    email: str = Field(default="", max_length=254)
    password: str = Field(default="", max_length=128)


class RegisterForm(BaseModel):
    """Account details posted to the registration page."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=120)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=254)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> Self:
        """Ensure both password fields agree."""
        if self.password != self.confirm_password:
            msg = "Passwords do not match"
            raise ValueError(msg)
        return self
