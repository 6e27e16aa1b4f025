"""Functions for managing user profiles in Firestore."""

from typing import Any, Dict

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestoreUser


async def get_user_profile(client: AsyncClient, uid: str) -> FirestoreUser | None:
    """Retrieves a user profile document from Firestore.

    Args:
        client: The asynchronous Firestore client.
        uid: The user's unique identifier.

    Returns:
        A FirestoreUser object if the profile exists, otherwise None.
    """
    doc_ref = client.collection("users").document(uid)
    snapshot = await doc_ref.get()

    if not snapshot.exists:
        return None

    return FirestoreUser(**{**snapshot.to_dict(), "uid": snapshot.id})


async def find_user_by_email(client: AsyncClient, email: str) -> FirestoreUser | None:
    """Looks a profile up by email.

    Email uniqueness is enforced by the auth provider, not by this
    collection; the first match wins.

    Args:
        client: The asynchronous Firestore client.
        email: The email address to search for.

    Returns:
        The first matching profile, or None.
    """
    query = client.collection("users").where(filter=FieldFilter("email", "==", email)).limit(1)
    docs = await query.get()
    if not docs:
        return None
    doc = docs[0]
    return FirestoreUser(**{**doc.to_dict(), "uid": doc.id})


async def update_user_profile(client: AsyncClient, uid: str, updates: Dict[str, Any]) -> FirestoreUser:
    """Merges profile fields into the member's own profile document.

    Args:
        client: The asynchronous Firestore client.
        uid: The member's UID (the document id).
        updates: Document fields to merge, keyed by their stored names.

    Returns:
        The profile after the merge.
    """
    doc_ref = client.collection("users").document(uid)
    try:
        await doc_ref.set(updates, merge=True)
        snapshot = await doc_ref.get()
    except Exception as e:
        raise RuntimeError(f"Failed to update profile: {str(e)}") from e
    return FirestoreUser(**{**(snapshot.to_dict() or {}), "uid": uid})
