"""Post feed router: listing, creating, opening, voting on and saving posts."""

from __future__ import annotations

from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from api.auth import User, get_current_member
from api.errors import http_error
from api.feed import SAVED, author_label, filter_posts, shuffle_posts
from api.models import (
    PostCreate,
    PostDetail,
    PostingEligibility,
    PostView,
    SavedPostsResponse,
    SaveResponse,
    ViewResponse,
    VoteRequest,
    VoteResponse,
)
from libs.common.settings import get_settings
from libs.firebase.client import get_firestore_async_client
from libs.firestore.posts import (
    count_commented_posts,
    create_post,
    delete_post,
    get_post,
    list_posts,
    list_saved_post_ids,
    record_view,
    toggle_saved_post,
)
from libs.firestore.votes import cast_vote, get_user_vote
from libs.models.firestore import FirestorePost

logger = structlog.get_logger(__name__)
router = APIRouter()


def to_post_view(post: FirestorePost, viewer_email: str | None) -> PostView:
    """Decorate a stored post with the author label shown to `viewer_email`."""
    return PostView(
        **post.model_dump(),
        author_label=author_label(post.author_email, post.user_display_name, viewer_email),
    )


async def _require_post(client, post_id: str) -> FirestorePost:
    post = await get_post(client, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Post {post_id} not found")
    return post


@router.get(
    "/v1/posts",
    response_model=List[PostView],
    tags=["Posts"],
    summary="Get the post feed",
)
async def get_feed(
    search: str = Query("", description="Case-insensitive text matched on title or problem"),
    category: str = Query("", description="Category, or home/all/unanswered/saved/trending"),
    shuffle: bool = Query(True, description="Randomize the order of the freshly loaded feed"),
    current_user: User = Depends(get_current_member),
) -> List[PostView]:
    """Load every post and apply the sidebar selection and search.

    A fresh load is shuffled unless `shuffle=false`; the `trending` selection
    always re-sorts by views.

    Example:
        ```bash
        curl "http://localhost:8000/api/v1/posts?category=school&search=exam" \\
          -H "Authorization: Bearer <id-token>"
        ```
    """
    client = get_firestore_async_client()
    try:
        posts = await list_posts(client)
        saved_ids = await list_saved_post_ids(client, current_user.uid) if category.strip().lower() == SAVED else set()
    except Exception as e:
        raise http_error(e, "Failed to load posts") from e

    if shuffle:
        posts = shuffle_posts(posts)
    visible = filter_posts(posts, search_term=search, sidebar_category=category, saved_ids=saved_ids)
    logger.debug("Feed loaded", total=len(posts), visible=len(visible), category=category or "home")
    return [to_post_view(post, current_user.email) for post in visible]


@router.post(
    "/v1/posts",
    response_model=PostView,
    status_code=status.HTTP_201_CREATED,
    tags=["Posts"],
    summary="Post a new problem",
)
async def create_post_endpoint(
    request: PostCreate,
    current_user: User = Depends(get_current_member),
) -> PostView:
    """Create a post for the current member.

    Members must first have commented on a minimum number of other members'
    posts (see `GET /v1/posts/eligibility`).

    Raises:
        HTTPException:
            - 403 if the member has not commented enough yet
            - 422 if category or subcategory is invalid

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/posts \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"title": "Exam stress", "problem": "...", "category": "school", "subcategory": "exams"}'
        ```
    """
    settings = get_settings()
    client = get_firestore_async_client()
    try:
        commented = await count_commented_posts(client, current_user.email)
        if commented < settings.min_commented_posts_to_post:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Comment on at least {settings.min_commented_posts_to_post} posts "
                    f"by other members before posting ({commented} so far)"
                ),
            )
        post = await create_post(
            client,
            FirestorePost(
                title=request.title,
                problem=request.problem,
                category=request.category,
                subcategory=request.subcategory,
                image_url=request.image_url,
                author_email=current_user.email,
                user_photo=current_user.picture,
                user_display_name=current_user.name,
            ),
        )
    except Exception as e:
        raise http_error(e, "Failed to create post") from e

    logger.info("Post created", post_id=post.id, category=post.category, uid=current_user.uid)
    return to_post_view(post, current_user.email)


@router.get(
    "/v1/posts/eligibility",
    response_model=PostingEligibility,
    tags=["Posts"],
    summary="Check whether the member may post",
)
async def posting_eligibility(current_user: User = Depends(get_current_member)) -> PostingEligibility:
    required = get_settings().min_commented_posts_to_post
    try:
        commented = await count_commented_posts(get_firestore_async_client(), current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to check posting eligibility") from e
    return PostingEligibility(can_post=commented >= required, commented_posts=commented, required=required)


@router.get(
    "/v1/posts/saved",
    response_model=SavedPostsResponse,
    tags=["Posts"],
    summary="List the member's saved post ids",
)
async def saved_posts(current_user: User = Depends(get_current_member)) -> SavedPostsResponse:
    try:
        saved = await list_saved_post_ids(get_firestore_async_client(), current_user.uid)
    except Exception as e:
        raise http_error(e, "Failed to load saved posts") from e
    return SavedPostsResponse(post_ids=sorted(saved))


@router.get(
    "/v1/posts/{post_id}",
    response_model=PostDetail,
    tags=["Posts"],
    summary="Open a post",
)
async def get_post_endpoint(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> PostDetail:
    """Return the post together with the caller's own vote, if any."""
    client = get_firestore_async_client()
    try:
        post = await _require_post(client, post_id)
        user_vote = await get_user_vote(client, post_id, current_user.uid)
    except Exception as e:
        raise http_error(e, "Failed to load post") from e
    return PostDetail(post=to_post_view(post, current_user.email), user_vote=user_vote)


@router.delete(
    "/v1/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Posts"],
    summary="Delete one of your posts",
)
async def delete_post_endpoint(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> Response:
    """Delete a post with its votes and comments. Only the author may do this."""
    try:
        await delete_post(get_firestore_async_client(), post_id, current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to delete post") from e
    logger.info("Post deleted", post_id=post_id, uid=current_user.uid)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/v1/posts/{post_id}/view",
    response_model=ViewResponse,
    tags=["Posts"],
    summary="Record that the member opened a post",
)
async def view_post(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> ViewResponse:
    """Count a view once per member; reopening the post is not counted again."""
    client = get_firestore_async_client()
    try:
        await _require_post(client, post_id)
        counted = await record_view(client, post_id, current_user.uid)
    except Exception as e:
        raise http_error(e, "Failed to record view") from e
    return ViewResponse(counted=counted)


@router.post(
    "/v1/posts/{post_id}/vote",
    response_model=VoteResponse,
    tags=["Posts"],
    summary="Like or dislike a post",
)
async def vote_on_post(
    post_id: str,
    request: VoteRequest,
    current_user: User = Depends(get_current_member),
) -> VoteResponse:
    """Press like or dislike.

    Pressing the same button again removes the vote; pressing the other one
    moves it.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/posts/<post-id>/vote \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"type": "like"}'
        ```

        Response:
        ```json
        {"userVote": "like", "upvotes": 4, "downvotes": 1}
        ```
    """
    try:
        result = await cast_vote(get_firestore_async_client(), post_id, current_user.uid, request.type)
    except Exception as e:
        raise http_error(e, "Failed to record vote") from e
    return VoteResponse(user_vote=result.user_vote, upvotes=result.upvotes, downvotes=result.downvotes)


@router.post(
    "/v1/posts/{post_id}/save",
    response_model=SaveResponse,
    tags=["Posts"],
    summary="Save or unsave a post",
)
async def save_post(
    post_id: str,
    current_user: User = Depends(get_current_member),
) -> SaveResponse:
    client = get_firestore_async_client()
    try:
        await _require_post(client, post_id)
        saved = await toggle_saved_post(client, current_user.uid, post_id)
    except Exception as e:
        raise http_error(e, "Failed to save post") from e
    return SaveResponse(post_id=post_id, saved=saved)
