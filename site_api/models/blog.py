"""Blog data models."""

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Blog(BaseModel):
    """One published article.

    ``slug``, ``meta_title`` and ``meta_desc`` are filled in at save time by
    ``derive_slug_and_meta``; a freshly constructed Blog may have them empty.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    content: str
    main_image: str | None = None
    author: str | None = None  # user id, lookup only
    author_profile_image: str | None = None
    category: str
    tags: list[str] = []
    slug: str = ""
    meta_title: str = ""
    meta_desc: str = ""
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class BlogSummary(BaseModel):
    """Listing index entry: enough to filter, sort and page without the document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    slug: str
    category: str
    created_at: datetime


class BlogUpdate(BaseModel):
    """Partial update: only fields present in the request body are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str | None = None
    content: str | None = None
    main_image: str | None = None
    author: str | None = None
    author_profile_image: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    meta_title: str | None = None
    meta_desc: str | None = None


class BlogPage(BaseModel):
    """One page of the blog listing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    blogs: list[Blog]
    total: int
    page: int
    total_pages: int
