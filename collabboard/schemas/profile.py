"""User profile schemas."""
from pydantic import EmailStr

from collabboard.schemas.record import Record


def normalize_email(email: str) -> str:
    """Emails are matched trimmed and lowercased everywhere."""
    return (email or "").strip().lower()


class UserProfile(Record):
    """Discoverable profile of an authenticated identity."""
    email: str = ""


class ProfileResponse(Record):
    """Profile as returned to the calling user."""
    email: EmailStr
