"""Pydantic models for the Peerhelp API.

This module defines the request and response models used by the API endpoints.
JSON field names are camelCase, matching the stored documents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from libs.models.firestore import CamelModel, FirestoreComment, FirestorePost, FirestoreUser, VoteType

# Fixed forum categories and the subcategories offered for each
CATEGORIES: Dict[str, List[str]] = {
    "mental health": ["anxiety", "depression", "stress", "sleep", "other"],
    "relationship": ["family", "friends", "romantic", "work", "other"],
    "school": ["assignments", "exams", "peer pressure", "other"],
    "finance": ["saving", "spending", "investing", "debt", "other"],
    "health": ["physical", "nutrition", "exercise", "illness", "other"],
    "career": ["job search", "promotion", "work-life balance", "other"],
    "family": ["parenting", "siblings", "marriage", "other"],
    "personal growth": ["motivation", "habits", "goals", "other"],
    "technology": ["devices", "software", "social media", "other"],
    "other": ["other"],
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(description="Service status", example="healthy")
    service: str = Field(description="Service name", example="api")
    version: str = Field(description="Service version", example="0.1.0")
    timestamp: float = Field(description="Unix timestamp", example=1700000000.0)
    checks: Optional[Dict[str, int | bool]] = Field(
        default=None,
        description="Dependency checks reported by /readyz",
        example={"firebase": True, "cloudinary": False, "liveStreams": 2},
    )


# --- Posts ---

class PostCreate(CamelModel):
    """Request model for posting a new problem."""
    title: str = Field(..., max_length=200, description="Short headline", example="Can't sleep before exams")
    problem: str = Field(..., max_length=5000, description="Full problem description")
    category: str = Field(..., description="One of the fixed categories", example="school")
    subcategory: Optional[str] = Field(None, description="Refinement valid for the category", example="exams")
    image_url: Optional[str] = Field(None, description="Image previously returned by /api/upload")

    @field_validator("title", "problem")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        """Validate that required text is present."""
        if not v.strip():
            raise ValueError("Field must not be empty")
        return v.strip()

    @field_validator("category")
    @classmethod
    def category_must_be_known(cls, v: str) -> str:
        """Validate the category against the fixed list."""
        normalized = v.strip().lower()
        if normalized not in CATEGORIES:
            raise ValueError(f"Unknown category: {v}")
        return normalized

    @model_validator(mode="after")
    def subcategory_must_match(self) -> "PostCreate":
        if self.subcategory:
            self.subcategory = self.subcategory.strip().lower()
            if self.subcategory not in CATEGORIES[self.category]:
                raise ValueError(f"Subcategory '{self.subcategory}' is not valid for '{self.category}'")
        else:
            self.subcategory = None
        return self


class PostView(FirestorePost):
    """A post as shown to a viewer."""
    author_label: str = Field(..., description="Display name or masked email of the author")


class PostDetail(CamelModel):
    """A single opened post with the viewer's own vote."""
    post: PostView
    user_vote: Optional[VoteType] = None


class PostingEligibility(CamelModel):
    """Whether a member has commented enough to start posting."""
    can_post: bool
    commented_posts: int
    required: int


class ViewResponse(CamelModel):
    counted: bool


class SaveResponse(CamelModel):
    post_id: str
    saved: bool


class SavedPostsResponse(CamelModel):
    post_ids: List[str]


# --- Votes ---

class VoteRequest(CamelModel):
    """Request model for pressing like or dislike."""
    type: VoteType = Field(..., description="'like' or 'dislike'")


class VoteResponse(CamelModel):
    user_vote: Optional[VoteType] = None
    upvotes: int
    downvotes: int


# --- Comments ---

class CommentCreate(CamelModel):
    """Request model for a comment or a reply."""
    text: str = Field(..., max_length=2000)

    @field_validator("text")
    @classmethod
    def text_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment text must not be empty")
        return v


class CommentDeleteResponse(CamelModel):
    comments: int = Field(..., description="The post's comment count after deletion")


class PostCardComments(CamelModel):
    comments: List[FirestoreComment]


# --- Messages ---

class MessageCreate(CamelModel):
    """Request model for sending a direct message (text or one image)."""
    to_email: EmailStr
    to_display_name: Optional[str] = None
    text: str = Field("", max_length=4000)
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def text_or_image(self) -> "MessageCreate":
        self.text = self.text.strip()
        if not self.text and not self.image_url:
            raise ValueError("A message needs text or an image")
        if self.image_url:
            self.text = ""
        return self


class ConversationSummaryResponse(CamelModel):
    peer_email: str
    peer_display_name: Optional[str] = None
    last_text: Optional[str] = None
    last_at: Optional[datetime] = None
    unread_count: int = 0


class MarkReadResponse(CamelModel):
    updated: int


class UnreadCountResponse(CamelModel):
    unread: int


# --- Users ---

class ProfileUpdate(CamelModel):
    """Request model for editing one's own profile."""
    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    photo_url: Optional[str] = Field(None, alias="photoURL")

    @model_validator(mode="after")
    def something_to_update(self) -> "ProfileUpdate":
        if self.display_name is None and self.bio is None and self.photo_url is None:
            raise ValueError("Nothing to update")
        return self


class ProfileResponse(FirestoreUser):
    avatar_url: str = Field(..., description="Photo URL, or a generated placeholder avatar")


# --- Payment analytics ---

class PaymentQueryRequest(BaseModel):
    """Body of the typed payment analytics query."""
    type: Optional[str] = Field(None, description="'revenue', 'conversion' or 'trends'")
    userId: Optional[str] = None
