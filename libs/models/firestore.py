"""Pydantic models for Firestore collections.

These models define the structure of the documents stored in Firestore
and are used for data validation and serialization. Field names are stored
in camelCase so the documents stay readable by the web client; Python code
uses the snake_case attribute names.
"""
from datetime import datetime, UTC
from typing import Literal

from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

VoteType = Literal["like", "dislike"]


def _now() -> datetime:
    return datetime.now(UTC)


class CamelModel(BaseModel):
    """Base model storing fields under camelCase names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize for a Firestore write (document id is never stored).

        `createdAt` is always written as the server timestamp, so stored
        ordering follows the database clock. The in-memory value returned to
        the caller is the app server's approximation of it.
        """
        document = self.model_dump(by_alias=True, exclude={"id"})
        if "createdAt" in document:
            document["createdAt"] = SERVER_TIMESTAMP
        return document


class FirestorePost(CamelModel):
    """A problem posted to the forum."""
    id: str | None = Field(None, description="Document id.")
    title: str = Field(..., description="Short headline of the problem.")
    problem: str = Field(..., description="Full problem text.")
    category: str = Field(..., description="One of the fixed forum categories.")
    subcategory: str | None = Field(None, description="Optional refinement of the category.")
    image_url: str | None = Field(None, description="Optional hosted image.")
    author_email: str = Field(..., alias="user", description="Author email, used as the user key.")
    user_photo: str | None = Field(None, description="Denormalized author photo URL.")
    user_display_name: str | None = Field(None, description="Denormalized author display name.")
    upvotes: int = Field(0, description="Count of 'like' votes.")
    downvotes: int = Field(0, description="Count of 'dislike' votes.")
    comments: int = Field(0, description="Count of top-level comments.")
    views: int = Field(0, description="Count of unique viewers.")
    created_at: datetime | None = Field(default_factory=_now, description="Creation timestamp.")


class FirestoreVote(CamelModel):
    """One member's vote on a post, keyed by the member's uid."""
    type: VoteType


class FirestoreComment(CamelModel):
    """A comment on a post."""
    id: str | None = None
    text: str
    author_email: str = Field(..., alias="user")
    user_display_name: str | None = None
    likes: int = 0
    created_at: datetime | None = Field(default_factory=_now)


class FirestoreReply(CamelModel):
    """A reply nested under a comment."""
    id: str | None = None
    text: str
    author_email: str = Field(..., alias="user")
    user_display_name: str | None = None
    created_at: datetime | None = Field(default_factory=_now)


class FirestoreMessage(CamelModel):
    """A direct message between two members.

    There is no conversation document: conversations are derived by grouping
    messages on the other participant.
    """
    id: str | None = None
    from_uid: str | None = None
    from_email: str
    from_display_name: str | None = None
    to_uid: str | None = None
    to_email: str
    to_display_name: str | None = None
    text: str = ""
    image_url: str | None = None
    participants: list[str] = Field(default_factory=list)
    read: bool = False
    created_at: datetime | None = Field(default_factory=_now)

    @model_validator(mode="after")
    def fill_participants(self) -> "FirestoreMessage":
        if not self.participants:
            self.participants = [email for email in (self.from_email, self.to_email) if email]
        return self


class FirestorePostMarker(CamelModel):
    """Membership marker in a member's savedPosts or viewedPosts collection."""
    post_id: str
    created_at: datetime | None = Field(default_factory=_now)


class FirestoreUser(CamelModel):
    """Represents a member's profile in Firestore."""
    uid: str | None = Field(None, description="The user's unique Firebase UID (document id).")
    email: str | None = Field(None, description="The user's email address.")
    display_name: str | None = Field(None, description="Public display name.")
    photo_url: str | None = Field(None, alias="photoURL", description="Avatar URL.")
    bio: str | None = Field(None, max_length=500, description="Profile biography.")


class FirestorePayment(CamelModel):
    """A payment record written by the external payment processor."""
    id: str | None = None
    amount: float | None = None
    status: str | None = None
    payment_method: str | None = None
    user_id: str | None = None
    created_at: datetime | None = None
