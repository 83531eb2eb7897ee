"""
User Profiles

Profile documents live in ``users/<uid>``. The ``admin`` flag gates access
to the admin dashboard; new dashboard sign-ups start as ``pending_admin``
until an existing admin flips the flag.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from storefront.models import Collection
from storefront.schemas import UserProfile
from storefront.services.store import SERVER_TIMESTAMP, BaseDocumentStore

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    """The signed-in account as reported by the authentication service."""
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_anonymous: bool = False


async def get_profile(store: BaseDocumentStore, uid: str) -> Optional[UserProfile]:
    doc = await store.get(Collection.USERS.value, uid)
    return UserProfile.from_document(doc) if doc else None


async def ensure_user_profile(store: BaseDocumentStore, user: AuthUser) -> Optional[UserProfile]:
    """
    Create the profile on first sign-in. Anonymous (guest) sessions get none.
    """
    if user.is_anonymous:
        return None

    profile = await get_profile(store, user.uid)
    if profile is not None:
        return profile

    await store.set(
        Collection.USERS.value,
        user.uid,
        {
            "email": user.email,
            "fullName": user.display_name or "App User",
            "createdAt": SERVER_TIMESTAMP,
            "role": "user",
            "admin": False,
            "platform": "app",
        },
    )
    logger.info(f"Created profile for user {user.uid}")
    return await get_profile(store, user.uid)


async def request_admin_access(store: BaseDocumentStore, user: AuthUser, full_name: str) -> None:
    """Register a dashboard account that still needs approval."""
    await store.set(
        Collection.USERS.value,
        user.uid,
        {
            "email": user.email,
            "fullName": full_name,
            "createdAt": SERVER_TIMESTAMP,
            "admin": False,
            "platform": "admin",
            "role": "pending_admin",
        },
    )
    logger.info(f"Admin access requested by {user.email}")


async def is_admin(store: BaseDocumentStore, uid: str) -> bool:
    doc = await store.get(Collection.USERS.value, uid)
    return doc is not None and doc.get("admin") is True


async def update_profile(store: BaseDocumentStore, uid: str, fields: dict) -> None:
    await store.update(Collection.USERS.value, uid, fields)
