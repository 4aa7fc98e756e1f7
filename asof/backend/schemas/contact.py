"""
Contact Form Schemas.
"""

from pydantic import BaseModel, Field


class ContactRequest(BaseModel):
    """
    Contact form submission.

    Length and format rules are enforced by ContactService so that the
    HTML form and the JSON endpoint report the same messages.
    """

    name: str = Field(default="", description="Sender name", examples=["Maria Souza"])
    email: str = Field(default="", description="Sender email")
    phone: str | None = Field(default=None, description="Optional phone number")
    subject: str = Field(default="", description="Message subject")
    message: str = Field(default="", description="Message body")


class ContactResult(BaseModel):
    message: str
    delivered: bool = Field(description="False when mail delivery is disabled in development")
