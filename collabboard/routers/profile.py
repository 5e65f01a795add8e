"""Profile router: register authenticated identities in the directory."""
from fastapi import APIRouter, Depends, Query

from collabboard.middleware.auth import CurrentUser, get_current_user
from collabboard.routers.deps import get_directory
from collabboard.schemas.profile import ProfileResponse
from collabboard.services.errors import ValidationError
from collabboard.services.identity_service import IdentityDirectory

router = APIRouter(tags=["Profile"])


@router.post("/session", response_model=ProfileResponse)
async def record_session(
    current_user: CurrentUser = Depends(get_current_user),
    directory: IdentityDirectory = Depends(get_directory),
):
    """Called by the front end after every successful sign-in or sign-up."""
    if not current_user.email:
        raise ValidationError("Token carries no email claim", {"field": "email"})
    return await directory.record_login(current_user.user_id, current_user.email)


@router.get("/profiles/lookup", response_model=ProfileResponse)
async def lookup_profile(
    email: str = Query(..., description="Email of the teammate to find"),
    current_user: CurrentUser = Depends(get_current_user),
    directory: IdentityDirectory = Depends(get_directory),
):
    """Find a teammate's profile by email."""
    return await directory.find_by_email(email)
