"""Comment and reply router for the discussion under each post."""

from __future__ import annotations

from typing import Dict, List

import structlog
from fastapi import APIRouter, Depends, Query, Response, status

from api.auth import User, get_current_member
from api.errors import http_error
from api.models import CommentCreate, CommentDeleteResponse
from libs.firebase.client import get_firestore_async_client
from libs.firestore.comments import (
    add_comment,
    add_reply,
    delete_comment,
    latest_comments,
    like_comment,
    list_comments,
    list_replies,
    list_replies_for_comments,
)
from libs.models.firestore import FirestoreComment, FirestoreReply

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/v1/posts/{post_id}/comments",
    response_model=List[FirestoreComment],
    tags=["Comments"],
    summary="List a post's comments",
)
async def get_comments(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> List[FirestoreComment]:
    """Every comment on the post, oldest first."""
    try:
        return await list_comments(get_firestore_async_client(), post_id)
    except Exception as e:
        raise http_error(e, "Failed to load comments") from e


@router.post(
    "/v1/posts/{post_id}/comments",
    response_model=List[FirestoreComment],
    status_code=status.HTTP_201_CREATED,
    tags=["Comments"],
    summary="Comment on a post",
)
async def post_comment(
    post_id: str,
    request: CommentCreate,
    current_user: User = Depends(get_current_member),
) -> List[FirestoreComment]:
    """Add a comment and return the refreshed comment list.

    The post's comment counter is incremented together with the new comment.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/posts/<post-id>/comments \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"text": "Have you tried talking to your tutor?"}'
        ```
    """
    client = get_firestore_async_client()
    try:
        comment = await add_comment(
            client,
            post_id,
            FirestoreComment(
                text=request.text,
                author_email=current_user.email,
                user_display_name=current_user.name,
            ),
        )
        comments = await list_comments(client, post_id)
    except Exception as e:
        raise http_error(e, "Failed to add comment") from e

    logger.info("Comment added", post_id=post_id, comment_id=comment.id, uid=current_user.uid)
    return comments


@router.get(
    "/v1/posts/{post_id}/comments/latest",
    response_model=List[FirestoreComment],
    tags=["Comments"],
    summary="Newest comments for a post card",
)
async def get_latest_comments(
    post_id: str,
    limit: int = Query(3, ge=1, le=20),
    current_user: User = Depends(get_current_member),
) -> List[FirestoreComment]:
    try:
        return await latest_comments(get_firestore_async_client(), post_id, limit=limit)
    except Exception as e:
        raise http_error(e, "Failed to load latest comments") from e


@router.delete(
    "/v1/posts/{post_id}/comments/{comment_id}",
    response_model=CommentDeleteResponse,
    tags=["Comments"],
    summary="Delete one of your comments",
)
async def remove_comment(
    post_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_member),
) -> CommentDeleteResponse:
    """Delete a comment and its replies. Only the comment's author may do this.

    Returns:
        The post's comment count after the deletion (never below zero).

    Raises:
        HTTPException:
            - 403 if the caller is not the author
            - 404 if the comment does not exist
    """
    try:
        remaining = await delete_comment(get_firestore_async_client(), post_id, comment_id, current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to delete comment") from e
    logger.info("Comment deleted", post_id=post_id, comment_id=comment_id, remaining=remaining)
    return CommentDeleteResponse(comments=remaining)


@router.post(
    "/v1/posts/{post_id}/comments/{comment_id}/like",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Comments"],
    summary="Like a comment",
)
async def like_comment_endpoint(
    post_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_member),
) -> Response:
    try:
        await like_comment(get_firestore_async_client(), post_id, comment_id)
    except Exception as e:
        raise http_error(e, "Failed to like comment") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/v1/posts/{post_id}/comments/{comment_id}/replies",
    response_model=List[FirestoreReply],
    tags=["Comments"],
    summary="List replies to a comment",
)
async def get_replies(
    post_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_member),
) -> List[FirestoreReply]:
    try:
        return await list_replies(get_firestore_async_client(), post_id, comment_id)
    except Exception as e:
        raise http_error(e, "Failed to load replies") from e


@router.post(
    "/v1/posts/{post_id}/comments/{comment_id}/replies",
    response_model=List[FirestoreReply],
    status_code=status.HTTP_201_CREATED,
    tags=["Comments"],
    summary="Reply to a comment",
)
async def post_reply(
    post_id: str,
    comment_id: str,
    request: CommentCreate,
    current_user: User = Depends(get_current_member),
) -> List[FirestoreReply]:
    """Add a reply under a comment and return the refreshed replies."""
    client = get_firestore_async_client()
    try:
        await add_reply(
            client,
            post_id,
            comment_id,
            FirestoreReply(
                text=request.text,
                author_email=current_user.email,
                user_display_name=current_user.name,
            ),
        )
        return await list_replies(client, post_id, comment_id)
    except Exception as e:
        raise http_error(e, "Failed to add reply") from e


@router.get(
    "/v1/posts/{post_id}/replies",
    response_model=Dict[str, List[FirestoreReply]],
    tags=["Comments"],
    summary="Replies for every comment of a post",
)
async def get_all_replies(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> Dict[str, List[FirestoreReply]]:
    """Replies keyed by comment id, fetched when a post's discussion is expanded."""
    client = get_firestore_async_client()
    try:
        comments = await list_comments(client, post_id)
        return await list_replies_for_comments(client, post_id, [c.id for c in comments])
    except Exception as e:
        raise http_error(e, "Failed to load replies") from e
