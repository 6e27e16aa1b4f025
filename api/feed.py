"""Feed presentation: shuffling, filtering and author labels for posts.

All functions here are pure; they operate on posts already loaded from
Firestore.
"""

from __future__ import annotations

import random
from typing import AbstractSet, Iterable, List, Optional

from libs.models.firestore import FirestorePost

# Sidebar entries that are not categories
HOME_VIEWS = frozenset({"", "home", "all"})
UNANSWERED = "unanswered"
SAVED = "saved"
TRENDING = "trending"
SPECIAL_VIEWS = HOME_VIEWS | {UNANSWERED, SAVED, TRENDING}


def shuffle_posts(posts: Iterable[FirestorePost], rng: Optional[random.Random] = None) -> List[FirestorePost]:
    """Return a shuffled copy of `posts` (Fisher-Yates via random.shuffle)."""
    shuffled = list(posts)
    (rng or random).shuffle(shuffled)
    return shuffled


def _matches_search(post: FirestorePost, needle: str) -> bool:
    return needle in (post.title or "").lower() or needle in (post.problem or "").lower()


def filter_posts(
    posts: Iterable[FirestorePost],
    search_term: str = "",
    sidebar_category: Optional[str] = None,
    saved_ids: AbstractSet[str] = frozenset(),
) -> List[FirestorePost]:
    """Apply sidebar selection and free-text search to a loaded feed.

    Filters compose with AND. `trending` filters nothing and re-sorts the
    result by views, most viewed first.

    Args:
        posts: Posts in their current display order.
        search_term: Case-insensitive substring matched on title or problem.
        sidebar_category: A category name or one of home/all/unanswered/saved/trending.
        saved_ids: Ids of the viewer's saved posts.

    Returns:
        The posts to display.
    """
    selection = (sidebar_category or "").strip().lower()
    needle = (search_term or "").strip().lower()

    result = []
    for post in posts:
        if selection == UNANSWERED and (post.comments or 0) != 0:
            continue
        if selection == SAVED and post.id not in saved_ids:
            continue
        if selection not in SPECIAL_VIEWS and (post.category or "").lower() != selection:
            continue
        if needle and not _matches_search(post, needle):
            continue
        result.append(post)

    if selection == TRENDING:
        result.sort(key=lambda p: p.views or 0, reverse=True)
    return result


def mask_email(email: Optional[str]) -> str:
    """Hide most of the local part of an email: `ab***@domain`."""
    if not email:
        return "User"
    local, _, domain = email.partition("@")
    if not local or not domain:
        return "User"
    return f"{local[:2]}***@{domain}"


def author_label(author_email: str, display_name: Optional[str], viewer_email: Optional[str]) -> str:
    """Name shown next to content: display name, else the masked email.

    Viewers see their own email unmasked.
    """
    if viewer_email and author_email == viewer_email:
        return display_name or author_email
    if display_name:
        return display_name
    if "@" in (author_email or ""):
        return mask_email(author_email)
    return "Anonymous User"
