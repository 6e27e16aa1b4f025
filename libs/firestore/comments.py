"""Functions for the comment/reply tree under each post."""

import uuid
from typing import Dict, Iterable, List

from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1 import Increment
from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.async_transaction import async_transactional

from libs.models.firestore import FirestoreComment, FirestoreReply


def _comments_path(post_id: str) -> str:
    return f"posts/{post_id}/comments"


def _replies_path(post_id: str, comment_id: str) -> str:
    return f"posts/{post_id}/comments/{comment_id}/replies"


async def list_comments(client: AsyncClient, post_id: str) -> List[FirestoreComment]:
    """Fetches every comment on a post, oldest first.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.

    Returns:
        All comments in creation order. There is no pagination.
    """
    query = client.collection(_comments_path(post_id)).order_by("createdAt", direction="ASCENDING")
    docs = await query.get()
    return [FirestoreComment(id=doc.id, **doc.to_dict()) for doc in docs]


async def latest_comments(client: AsyncClient, post_id: str, limit: int = 3) -> List[FirestoreComment]:
    """Fetches the newest comments of a post for its feed card."""
    query = (
        client.collection(_comments_path(post_id))
        .order_by("createdAt", direction="DESCENDING")
        .limit(limit)
    )
    docs = await query.get()
    return [FirestoreComment(id=doc.id, **doc.to_dict()) for doc in docs]


async def add_comment(client: AsyncClient, post_id: str, comment: FirestoreComment) -> FirestoreComment:
    """Appends a comment and bumps the post's comment counter.

    Both writes go in one batch, which keeps the stored counter equal to the
    number of comment documents.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.
        comment: The comment to store.

    Returns:
        The stored comment including its generated id.

    Raises:
        LookupError: If the post does not exist.
    """
    post_ref = client.collection("posts").document(post_id)
    post_snapshot = await post_ref.get()
    if not post_snapshot.exists:
        raise LookupError(f"Post {post_id} not found")

    comment_id = str(uuid.uuid4())
    stored = comment.model_copy(update={"id": comment_id, "likes": 0})
    batch = client.batch()
    batch.set(client.collection(_comments_path(post_id)).document(comment_id), stored.to_document())
    batch.update(post_ref, {"comments": Increment(1)})
    try:
        await batch.commit()
    except Exception as e:
        raise RuntimeError(f"Failed to add comment: {str(e)}") from e
    return stored


async def like_comment(client: AsyncClient, post_id: str, comment_id: str) -> None:
    """Atomically adds one like to a comment.

    Raises:
        LookupError: If the comment does not exist.
    """
    comment_ref = client.collection(_comments_path(post_id)).document(comment_id)
    try:
        await comment_ref.update({"likes": Increment(1)})
    except NotFound as e:
        raise LookupError(f"Comment {comment_id} not found") from e


async def _remove_comment(transaction, post_ref, comment_ref, replies_ref, requester_email: str) -> int:
    comment_snapshot = await comment_ref.get(transaction=transaction)
    if not comment_snapshot.exists:
        raise LookupError(f"Comment {comment_ref.id} not found")
    if comment_snapshot.to_dict().get("user") != requester_email:
        raise PermissionError("Only the author can delete this comment")

    post_snapshot = await post_ref.get(transaction=transaction)
    current = (post_snapshot.to_dict() or {}).get("comments", 0) if post_snapshot.exists else 0
    current = current or 0
    replies = await replies_ref.get(transaction=transaction)

    for reply in replies:
        transaction.delete(reply.reference)
    transaction.delete(comment_ref)
    if current > 0:
        transaction.update(post_ref, {"comments": Increment(-1)})
    return max(0, current - 1)


async def delete_comment(
    client: AsyncClient, post_id: str, comment_id: str, requester_email: str
) -> int:
    """Deletes a comment (and its replies) on behalf of its author.

    The post's comment counter is decremented by one but never below zero.
    The counter is read in the same transaction that writes it, so two
    deletes racing on a counter of 1 cannot both decrement it.
    A non-author request is rejected before anything is written.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.
        comment_id: The comment document id.
        requester_email: Email of the member asking for the deletion.

    Returns:
        The post's comment count after the deletion.

    Raises:
        LookupError: If the comment does not exist.
        PermissionError: If the requester is not the comment's author.
    """
    post_ref = client.collection("posts").document(post_id)
    comment_ref = client.collection(_comments_path(post_id)).document(comment_id)
    replies_ref = client.collection(_replies_path(post_id, comment_id))

    remove_comment = async_transactional(_remove_comment)
    try:
        return await remove_comment(client.transaction(), post_ref, comment_ref, replies_ref, requester_email)
    except (LookupError, PermissionError):
        raise
    except Exception as e:
        raise RuntimeError(f"Failed to delete comment: {str(e)}") from e


async def list_replies(client: AsyncClient, post_id: str, comment_id: str) -> List[FirestoreReply]:
    """Fetches the replies under one comment, oldest first."""
    query = client.collection(_replies_path(post_id, comment_id)).order_by("createdAt", direction="ASCENDING")
    docs = await query.get()
    return [FirestoreReply(id=doc.id, **doc.to_dict()) for doc in docs]


async def list_replies_for_comments(
    client: AsyncClient, post_id: str, comment_ids: Iterable[str]
) -> Dict[str, List[FirestoreReply]]:
    """Fetches replies for several comments, keyed by comment id."""
    return {comment_id: await list_replies(client, post_id, comment_id) for comment_id in comment_ids}


async def add_reply(
    client: AsyncClient, post_id: str, comment_id: str, reply: FirestoreReply
) -> FirestoreReply:
    """Appends a reply under a comment.

    Raises:
        LookupError: If the parent comment does not exist.
    """
    comment_snapshot = await client.collection(_comments_path(post_id)).document(comment_id).get()
    if not comment_snapshot.exists:
        raise LookupError(f"Comment {comment_id} not found")

    reply_id = str(uuid.uuid4())
    stored = reply.model_copy(update={"id": reply_id})
    try:
        await client.collection(_replies_path(post_id, comment_id)).document(reply_id).set(stored.to_document())
    except Exception as e:
        raise RuntimeError(f"Failed to add reply: {str(e)}") from e
    return stored
