"""Identity directory: authenticated identities made discoverable by email."""
import logging
from typing import Dict, List, Optional

from collabboard.schemas.profile import UserProfile, normalize_email
from collabboard.services.errors import NotFoundError, ValidationError
from collabboard.store.base import DocumentStore, FieldFilter

logger = logging.getLogger(__name__)

USERS = "users"


class IdentityDirectory:
    """Service for profile upserts and email lookups."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def record_login(self, user_id: str, email: Optional[str] = None) -> UserProfile:
        """
        Upsert the profile of a freshly authenticated identity.

        Merge semantics: a field that is not supplied keeps its stored value.
        """
        if not user_id:
            raise ValidationError("Identity without a user id", {"field": "user_id"})
        fields = {"uid": user_id}
        if email:
            fields["email"] = normalize_email(email)
        await self.store.set_document(USERS, user_id, fields, merge=True)
        logger.info(f"Profile upserted for user {user_id}")
        return await self.get_profile(user_id)

    async def get_profile(self, user_id: str) -> UserProfile:
        document = await self.store.get_document(USERS, user_id)
        if document is None:
            raise NotFoundError("Profile not found", {"user_id": user_id})
        return UserProfile.from_document(document)

    async def find_by_email(self, email: str) -> UserProfile:
        """Resolve a profile by email (case and surrounding spaces ignored)."""
        email_lower = normalize_email(email)
        if not email_lower:
            raise ValidationError("Email is required", {"field": "email"})
        matches = await self.store.query(USERS, [FieldFilter("email", "==", email_lower)])
        if not matches:
            raise NotFoundError(
                "No account found with this email. They need to sign up first.",
                {"email": email_lower},
            )
        document = matches[0]
        return UserProfile(id=document.data.get("uid") or document.id, email=email_lower)

    async def resolve_emails(self, user_ids: List[str]) -> Dict[str, str]:
        """Map user ids to emails; ids without a profile map to "(unknown)"."""
        resolved: Dict[str, str] = {}
        for uid in user_ids:
            document = await self.store.get_document(USERS, uid)
            resolved[uid] = (document.data.get("email") if document else None) or "(unknown)"
        return resolved
