"""
Sleeping Backend: Feed Schemas
===============================

What:  DTOs for posts, likes, comments and hashtag events.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PostResponse(BaseModel):
    """A post joined with its author and derived like information."""
    id: int
    user_id: int
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: str
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None
    username: str
    avatar_url: Optional[str] = None
    aura_color: Optional[str] = None
    likes: int = Field(default=0, description="Derived count of post_likes rows")
    is_liked: bool = Field(default=False, description="Whether the viewing account liked this post")


class FeedResponse(BaseModel):
    posts: List[PostResponse]


class LikeResponse(BaseModel):
    success: bool = True
    liked: bool
    likes: int


class CommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment cannot be empty")
        return v


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None
    username: str
    avatar_url: Optional[str] = None
    aura_color: Optional[str] = None


class EventResponse(BaseModel):
    id: int
    tag: str
    title: str
    description: Optional[str] = None
    banner_url: Optional[str] = None
    active: bool
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EventDetailResponse(BaseModel):
    event: EventResponse
    posts: List[PostResponse]
