"""Save-time derivation of blog slugs and SEO metadata.

``derive_slug_and_meta`` runs explicitly on every write path before the
blog reaches the store.  The slug check-then-write is not atomic: two
concurrent saves with the same title can pick the same slug, and the
store's unique slug claim then fails the second write with DuplicateKey.
"""

import re
from collections.abc import Awaitable, Callable

from slugify import slugify

from site_api.models.blog import Blog

META_DESC_LENGTH = 160
FALLBACK_SLUG = "blog"

_TAG_RE = re.compile(r"<[^>]+>")
_ANGLE_RE = re.compile(r"[<>]")
_WHITESPACE_RE = re.compile(r"\s+")

# slug -> True when another blog already owns it
SlugLookup = Callable[[str], Awaitable[bool]]


def base_slug(title: str) -> str:
    """Lower-case, URL-safe token set derived from *title*."""
    return slugify(title, lowercase=True) or FALLBACK_SLUG


def derive_meta_desc(content: str) -> str:
    """Strip tags and stray angle brackets, collapse whitespace, cut to 160 chars."""
    text = _TAG_RE.sub("", content or "")
    text = _ANGLE_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text).strip()
    return text[:META_DESC_LENGTH]


async def unique_slug(title: str, slug_taken: SlugLookup) -> str:
    base = base_slug(title)
    slug = base
    counter = 1
    while await slug_taken(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


async def derive_slug_and_meta(
    blog: Blog, slug_taken: SlugLookup, *, title_changed: bool
) -> Blog:
    """Return a copy of *blog* with slug and SEO fields settled for saving.

    The slug is recomputed only when the title changed or none exists yet.
    Blank meta fields are always backfilled from title and content.
    """
    updates: dict[str, str] = {}
    if title_changed or not blog.slug:
        updates["slug"] = await unique_slug(blog.title, slug_taken)
    if not blog.meta_title.strip():
        updates["meta_title"] = blog.title
    if not blog.meta_desc.strip():
        # Markup-only content leaves nothing to describe; use the title, then the slug
        updates["meta_desc"] = (
            derive_meta_desc(blog.content)
            or derive_meta_desc(blog.title)
            or updates.get("slug", blog.slug)
            or FALLBACK_SLUG
        )
    return blog.model_copy(update=updates)
