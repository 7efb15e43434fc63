"""Azure Blob Storage document store for blogs.

Layout inside the blog container::

    blogs/{id}.json     one Blog document
    slugs/{slug}.json   {"id": ...}, created with overwrite=False, so a
                        slug can only ever be claimed by one blog
    blog-index.json     [{id, slug, category, created_at}, ...] for listing;
                        written with an ETag precondition and retried on
                        conflict so concurrent writers do not drop entries

The storage SDK is synchronous; every call runs via ``asyncio.to_thread``
so request handlers never block the event loop.
"""

import asyncio
import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone

from azure.core import MatchConditions
from azure.core.exceptions import (
    ResourceExistsError,
    ResourceModifiedError,
    ResourceNotFoundError,
)
from azure.identity import DefaultAzureCredential, ManagedIdentityCredential
from azure.storage.blob import ContainerClient, ContentSettings

from site_api.config import get_settings
from site_api.errors import DuplicateKey, NotFound
from site_api.models.blog import Blog, BlogSummary

logger = logging.getLogger(__name__)

_SAFE_PATH_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")

JSON_CONTENT = ContentSettings(content_type="application/json")
BLOG_PREFIX = "blogs/"
SLUG_PREFIX = "slugs/"
BLOG_INDEX_BLOB = "blog-index.json"
INDEX_WRITE_ATTEMPTS = 5

IndexChange = Callable[[list[BlogSummary]], list[BlogSummary]]

# Lazy singleton, lives for the process lifetime
_container_client: ContainerClient | None = None


def validate_blob_path_segment(segment: str) -> str:
    """Validate a user-supplied blob path segment.

    Rejects inputs containing path traversal sequences (..), slashes,
    backslashes, or other unsafe characters. Returns the segment unchanged
    if valid; raises ValueError otherwise.
    """
    if not segment or ".." in segment or not _SAFE_PATH_SEGMENT_RE.match(segment):
        raise ValueError(f"Invalid blob path segment: {segment!r}")
    return segment


def _blog_blob(blog_id: str) -> str:
    return f"{BLOG_PREFIX}{validate_blob_path_segment(blog_id)}.json"


def _slug_blob(slug: str) -> str:
    return f"{SLUG_PREFIX}{validate_blob_path_segment(slug)}.json"


def _get_container_client() -> ContainerClient:
    """Return a shared blob container client for blog documents (lazy singleton)."""
    global _container_client
    if _container_client is None:
        settings = get_settings()
        account_url = f"https://{settings.azure_storage_account}.blob.core.windows.net"
        if settings.managed_identity_client_id:
            credential = ManagedIdentityCredential(
                client_id=settings.managed_identity_client_id
            )
        else:
            credential = DefaultAzureCredential()
        _container_client = ContainerClient(
            account_url=account_url,
            container_name=settings.blog_container,
            credential=credential,
        )
    return _container_client


def check_storage_connectivity() -> bool:
    """Lightweight storage connectivity check: lists 1 blob."""
    try:
        client = _get_container_client()
        next(client.list_blobs(results_per_page=1).__iter__())
        return True
    except StopIteration:
        # Container exists but is empty, still connected
        return True
    except Exception:
        return False


# --- synchronous primitives (run in a worker thread) ---


def _read_json(name: str) -> dict | None:
    try:
        data = _get_container_client().get_blob_client(name).download_blob().readall()
    except ResourceNotFoundError:
        return None
    return json.loads(data)


def _write_json(name: str, payload: dict, *, overwrite: bool = True) -> None:
    _get_container_client().get_blob_client(name).upload_blob(
        json.dumps(payload, indent=2),
        overwrite=overwrite,
        content_settings=JSON_CONTENT,
    )


def _delete(name: str) -> None:
    try:
        _get_container_client().get_blob_client(name).delete_blob()
    except ResourceNotFoundError:
        pass


def _claim_slug(slug: str, blog_id: str) -> None:
    try:
        _write_json(_slug_blob(slug), {"id": blog_id}, overwrite=False)
    except ResourceExistsError as e:
        raise DuplicateKey(f"Duplicate slug: {slug!r}") from e


def _load_documents() -> list[Blog]:
    client = _get_container_client()
    blogs = []
    for props in client.list_blobs(name_starts_with=BLOG_PREFIX):
        data = _read_json(props.name)
        if data is None:
            continue  # deleted between list and read
        try:
            blogs.append(Blog(**data))
        except ValueError as e:
            logger.warning("Skipping unreadable blog document %s: %s", props.name, e)
    return blogs


def _read_index() -> tuple[list[BlogSummary], str | None]:
    """Return the listing index and its ETag (None when no index exists yet)."""
    blob = _get_container_client().get_blob_client(BLOG_INDEX_BLOB)
    try:
        downloader = blob.download_blob()
    except ResourceNotFoundError:
        return [], None
    entries = [BlogSummary(**e) for e in json.loads(downloader.readall())]
    return entries, downloader.properties.etag


def _update_index(change: IndexChange) -> None:
    """Read-modify-write the index, retrying when another writer got in first."""
    blob = _get_container_client().get_blob_client(BLOG_INDEX_BLOB)
    for attempt in range(1, INDEX_WRITE_ATTEMPTS + 1):
        entries, etag = _read_index()
        data = json.dumps([e.model_dump(mode="json") for e in change(entries)], indent=2)
        try:
            if etag is None:
                blob.upload_blob(data, overwrite=False, content_settings=JSON_CONTENT)
            else:
                blob.upload_blob(
                    data,
                    overwrite=True,
                    etag=etag,
                    match_condition=MatchConditions.IfNotModified,
                    content_settings=JSON_CONTENT,
                )
            return
        except (ResourceExistsError, ResourceModifiedError):
            if attempt == INDEX_WRITE_ATTEMPTS:
                raise
            logger.info("Blog index changed underneath us, retrying (attempt %d)", attempt)


def _summary(blog: Blog) -> BlogSummary:
    return BlogSummary(
        id=blog.id, slug=blog.slug, category=blog.category, created_at=blog.created_at
    )


def _put_entry(blog: Blog) -> IndexChange:
    summary = _summary(blog)
    return lambda entries: [e for e in entries if e.id != blog.id] + [summary]


def _drop_entry(blog_id: str) -> IndexChange:
    return lambda entries: [e for e in entries if e.id != blog_id]


def _slug_owner(slug: str) -> str | None:
    marker = _read_json(_slug_blob(slug))
    return marker.get("id") if marker else None


# --- async API ---


async def slug_taken(slug: str, exclude_id: str | None = None) -> bool:
    """True if *slug* belongs to a blog other than *exclude_id*."""
    owner = await asyncio.to_thread(_slug_owner, slug)
    return owner is not None and owner != exclude_id


async def list_blogs(
    category: str | None = None, page: int = 1, limit: int = 10
) -> tuple[list[Blog], int]:
    """Return one page of blogs (newest first) and the total matching count.

    Filtering, ordering and paging run on the index; only the documents on
    the requested page are downloaded.

    Args:
        category: Exact category to filter by.
        page: 1-based page number.
        limit: Page size.
    """
    entries, _ = await asyncio.to_thread(_read_index)
    if category:
        entries = [e for e in entries if e.category == category]
    entries.sort(key=lambda e: e.created_at, reverse=True)
    total = len(entries)
    start = (page - 1) * limit
    page_entries = entries[start : start + limit]

    docs = await asyncio.gather(
        *(asyncio.to_thread(_read_json, _blog_blob(e.id)) for e in page_entries)
    )
    blogs = []
    for entry, data in zip(page_entries, docs):
        if data is None:
            logger.warning("Index lists blog %s but its document is missing", entry.id)
            continue
        blogs.append(Blog(**data))
    return blogs, total


async def rebuild_index() -> int:
    """Regenerate the listing index from the stored documents.

    For containers populated before the index existed, or after manual edits.
    Returns the number of indexed blogs.
    """
    blogs = await asyncio.to_thread(_load_documents)
    summaries = [_summary(b) for b in blogs]
    await asyncio.to_thread(_update_index, lambda _: summaries)
    logger.info("Rebuilt blog index with %d entries", len(summaries))
    return len(summaries)


async def get_blog(blog_id: str) -> Blog:
    try:
        data = await asyncio.to_thread(_read_json, _blog_blob(blog_id))
    except ValueError:
        data = None
    if data is None:
        raise NotFound("Blog not found")
    return Blog(**data)


async def get_blog_by_slug(slug: str) -> Blog:
    try:
        owner = await asyncio.to_thread(_slug_owner, slug)
    except ValueError:
        owner = None
    if owner is None:
        raise NotFound("Blog not found")
    return await get_blog(owner)


async def insert_blog(blog: Blog) -> Blog:
    """Persist a new blog. Raises DuplicateKey if its slug is already claimed."""
    await asyncio.to_thread(_claim_slug, blog.slug, blog.id)
    try:
        await asyncio.to_thread(_write_json, _blog_blob(blog.id), blog.model_dump(mode="json"))
        await asyncio.to_thread(_update_index, _put_entry(blog))
    except Exception:
        await asyncio.to_thread(_delete, _blog_blob(blog.id))
        await asyncio.to_thread(_delete, _slug_blob(blog.slug))
        raise
    logger.info("Created blog %s (%s)", blog.id, blog.slug)
    return blog


async def update_blog(blog: Blog, previous_slug: str) -> Blog:
    """Persist changes to an existing blog, moving its slug claim if needed."""
    blog = blog.model_copy(update={"updated_at": datetime.now(timezone.utc)})
    slug_moved = blog.slug != previous_slug
    if slug_moved:
        await asyncio.to_thread(_claim_slug, blog.slug, blog.id)
    try:
        await asyncio.to_thread(_write_json, _blog_blob(blog.id), blog.model_dump(mode="json"))
    except Exception:
        if slug_moved:
            await asyncio.to_thread(_delete, _slug_blob(blog.slug))
        raise
    if slug_moved:
        await asyncio.to_thread(_delete, _slug_blob(previous_slug))
    await asyncio.to_thread(_update_index, _put_entry(blog))
    logger.info("Updated blog %s (%s)", blog.id, blog.slug)
    return blog


async def delete_blog_by_slug(slug: str) -> Blog:
    blog = await get_blog_by_slug(slug)
    await asyncio.to_thread(_update_index, _drop_entry(blog.id))
    await asyncio.to_thread(_delete, _blog_blob(blog.id))
    await asyncio.to_thread(_delete, _slug_blob(blog.slug))
    logger.info("Deleted blog %s (%s)", blog.id, blog.slug)
    return blog
