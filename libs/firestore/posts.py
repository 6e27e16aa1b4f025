"""Functions for managing forum posts and per-member post markers in Firestore."""

import uuid
from typing import List, Set

from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1 import Increment
from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestorePost, FirestorePostMarker

POSTS = "posts"


def _post_from_snapshot(snapshot) -> FirestorePost:
    return FirestorePost(id=snapshot.id, **snapshot.to_dict())


async def list_posts(client: AsyncClient) -> List[FirestorePost]:
    """Loads every post, newest first.

    Args:
        client: The asynchronous Firestore client.

    Returns:
        All posts ordered by creation time descending.
    """
    try:
        query = client.collection(POSTS).order_by("createdAt", direction="DESCENDING")
        docs = await query.get()
    except Exception as e:
        raise RuntimeError(f"Failed to load posts: {str(e)}") from e
    return [_post_from_snapshot(doc) for doc in docs]


async def list_posts_by_author(client: AsyncClient, email: str) -> List[FirestorePost]:
    """Loads the posts written by one member, newest first."""
    try:
        query = (
            client.collection(POSTS)
            .where(filter=FieldFilter("user", "==", email))
            .order_by("createdAt", direction="DESCENDING")
        )
        docs = await query.get()
    except Exception as e:
        raise RuntimeError(f"Failed to load posts for author: {str(e)}") from e
    return [_post_from_snapshot(doc) for doc in docs]


async def get_post(client: AsyncClient, post_id: str) -> FirestorePost | None:
    """Retrieves a single post.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.

    Returns:
        The post if it exists, otherwise None.
    """
    snapshot = await client.collection(POSTS).document(post_id).get()
    if not snapshot.exists:
        return None
    return _post_from_snapshot(snapshot)


async def create_post(client: AsyncClient, post: FirestorePost) -> FirestorePost:
    """Stores a new post with zeroed counters.

    Args:
        client: The asynchronous Firestore client.
        post: The validated post (its id and counters are ignored).

    Returns:
        The stored post including its generated id.
    """
    post_id = str(uuid.uuid4())
    stored = post.model_copy(update={"id": post_id, "upvotes": 0, "downvotes": 0, "comments": 0, "views": 0})
    try:
        await client.collection(POSTS).document(post_id).set(stored.to_document())
    except Exception as e:
        raise RuntimeError(f"Failed to create post: {str(e)}") from e
    return stored


async def delete_post(client: AsyncClient, post_id: str, requester_email: str) -> None:
    """Deletes a post together with its votes, comments and replies.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.
        requester_email: Email of the member asking for the deletion.

    Raises:
        LookupError: If the post does not exist.
        PermissionError: If the requester is not the author.
    """
    doc_ref = client.collection(POSTS).document(post_id)
    snapshot = await doc_ref.get()
    if not snapshot.exists:
        raise LookupError(f"Post {post_id} not found")
    if snapshot.to_dict().get("user") != requester_email:
        raise PermissionError("Only the author can delete this post")
    try:
        await client.recursive_delete(doc_ref)
    except Exception as e:
        raise RuntimeError(f"Failed to delete post: {str(e)}") from e


async def record_view(client: AsyncClient, post_id: str, uid: str) -> bool:
    """Counts a view the first time a member opens a post.

    The viewed marker is created (never overwritten) in the same batch as the
    counter increment. If a concurrent open already created the marker the
    whole batch is rejected, so each member adds exactly one view.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.
        uid: The viewer's UID.

    Returns:
        True if this open was counted, False if the member had already viewed it.
    """
    marker_ref = client.collection(f"users/{uid}/viewedPosts").document(post_id)
    marker = await marker_ref.get()
    if marker.exists:
        return False

    post_ref = client.collection(POSTS).document(post_id)
    batch = client.batch()
    batch.create(marker_ref, FirestorePostMarker(post_id=post_id).to_document())
    batch.update(post_ref, {"views": Increment(1)})
    try:
        await batch.commit()
    except AlreadyExists:
        return False
    except Exception as e:
        raise RuntimeError(f"Failed to record view: {str(e)}") from e
    return True


async def list_viewed_post_ids(client: AsyncClient, uid: str) -> Set[str]:
    """Returns the ids of every post the member has opened."""
    docs = await client.collection(f"users/{uid}/viewedPosts").get()
    return {doc.id for doc in docs}


async def list_saved_post_ids(client: AsyncClient, uid: str) -> Set[str]:
    """Returns the ids of every post the member has saved."""
    docs = await client.collection(f"users/{uid}/savedPosts").get()
    return {doc.id for doc in docs}


async def toggle_saved_post(client: AsyncClient, uid: str, post_id: str) -> bool:
    """Saves a post, or unsaves it if it was already saved.

    Returns:
        True if the post is saved after the call, False otherwise.
    """
    marker_ref = client.collection(f"users/{uid}/savedPosts").document(post_id)
    try:
        marker = await marker_ref.get()
        if marker.exists:
            await marker_ref.delete()
            return False
        await marker_ref.set(FirestorePostMarker(post_id=post_id).to_document())
        return True
    except Exception as e:
        raise RuntimeError(f"Failed to toggle saved post: {str(e)}") from e


async def count_commented_posts(client: AsyncClient, email: str) -> int:
    """Counts the distinct posts by other members that this member commented on.

    Args:
        client: The asynchronous Firestore client.
        email: The member's email.

    Returns:
        Number of distinct posts, excluding the member's own posts.
    """
    comment_docs = await client.collection_group("comments").where(
        filter=FieldFilter("user", "==", email)
    ).get()
    commented = {doc.reference.parent.parent.id for doc in comment_docs}
    if not commented:
        return 0

    own_docs = await client.collection(POSTS).where(filter=FieldFilter("user", "==", email)).get()
    own = {doc.id for doc in own_docs}
    return len(commented - own)
