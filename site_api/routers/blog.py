"""Blog endpoints."""

import base64
import json
import logging
import math
from functools import partial

from fastapi import APIRouter, File, Form, Query, UploadFile

from site_api.errors import ValidationError
from site_api.models.blog import Blog, BlogPage, BlogUpdate
from site_api.services.blog_lifecycle import derive_slug_and_meta
from site_api.services.blog_store import (
    delete_blog_by_slug,
    get_blog,
    get_blog_by_slug,
    insert_blog,
    list_blogs,
    slug_taken,
    update_blog,
)
from site_api.services.translation import (
    DETAIL_FIELDS,
    translate_blog,
    translate_blogs,
    unwrap,
    wants_translation,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["blog"])


def _parse_tags(raw: str | None) -> list[str]:
    """Tags arrive as a JSON array string inside the multipart form."""
    if not raw or not raw.strip():
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("tags must be a JSON array of strings") from None
    if not isinstance(tags, list):
        raise ValidationError("tags must be a JSON array of strings")
    return [str(t).strip() for t in tags if str(t).strip()]


def _require(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{name} is required")
    return value


async def _cover_data_uri(cover: UploadFile | None) -> str | None:
    if cover is None:
        return None
    data = await cover.read()
    if not data:
        return None
    content_type = cover.content_type or "application/octet-stream"
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


@router.get("", response_model=BlogPage)
async def list_blog_posts(
    category: str | None = Query(default=None, description="Exact category match"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    lang: str = Query(default="en"),
):
    """Get one page of blogs, newest first, optionally translated."""
    blogs, total = await list_blogs(category=category, page=page, limit=limit)
    if wants_translation(lang):
        blogs = await translate_blogs(blogs, lang)
    return BlogPage(
        blogs=blogs,
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


@router.get("/{slug}", response_model=Blog)
async def get_blog_post(slug: str, lang: str = Query(default="en")):
    """Get a single blog by slug."""
    blog = await get_blog_by_slug(slug)
    if wants_translation(lang):
        blog = unwrap(await translate_blog(blog, lang, DETAIL_FIELDS))
    return blog


@router.post("", response_model=Blog, status_code=201)
async def create_blog_post(
    title: str = Form(...),
    content: str = Form(...),
    category: str = Form(...),
    tags: str | None = Form(default=None),
    meta_title: str | None = Form(default=None, alias="metaTitle"),
    meta_desc: str | None = Form(default=None, alias="metaDesc"),
    author: str | None = Form(default=None),
    author_profile_image: str | None = Form(default=None, alias="authorProfileImage"),
    cover: UploadFile | None = File(default=None),
):
    """Create a blog; the optional `cover` file is stored as a data URI."""
    blog = Blog(
        title=_require(title, "title").strip(),
        content=_require(content, "content"),
        category=_require(category, "category").strip(),
        tags=_parse_tags(tags),
        main_image=await _cover_data_uri(cover),
        author=author or None,
        author_profile_image=author_profile_image or None,
        meta_title=(meta_title or "").strip(),
        meta_desc=(meta_desc or "").strip(),
    )
    blog = await derive_slug_and_meta(blog, slug_taken, title_changed=True)
    return await insert_blog(blog)


@router.put("/{blog_id}", response_model=Blog)
async def update_blog_post(blog_id: str, changes: BlogUpdate):
    """Merge the supplied fields into an existing blog."""
    current = await get_blog(blog_id)
    updates = changes.model_dump(exclude_unset=True)
    for name in ("title", "content", "category"):
        if name in updates:
            updates[name] = _require(updates[name] or "", name)
    for name in ("meta_title", "meta_desc"):
        if name in updates and updates[name] is None:
            updates[name] = ""

    merged = current.model_copy(update=updates)
    title_changed = merged.title != current.title
    merged = await derive_slug_and_meta(
        merged, partial(slug_taken, exclude_id=current.id), title_changed=title_changed
    )
    return await update_blog(merged, previous_slug=current.slug)


@router.delete("/{slug}")
async def delete_blog_post(slug: str):
    """Delete a blog by slug."""
    await delete_blog_by_slug(slug)
    return {"message": "Blog deleted successfully"}
