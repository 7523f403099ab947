"""Contact form submission schema."""

from pydantic import BaseModel, ConfigDict


class ContactForm(BaseModel):
    """The five fields of the contact form.

    Missing fields are empty strings; the form is not validated beyond that.
    Values arrive already sanitized by the request pipeline.
    """

    model_config = ConfigDict(
        extra="ignore",
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )

    name: str = ""
    phone: str = ""
    email: str = ""
    subject: str = ""
    message: str = ""
