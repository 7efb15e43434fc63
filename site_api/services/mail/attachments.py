"""Attachment resolution: turn request identifiers into transport-ready references.

Identifiers are either remote URLs (passed through untouched) or bare
filenames looked up in the single attachment directory.  Nothing here
ever fails a request: unusable identifiers are dropped with a warning.
"""

import asyncio
import logging
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

from site_api.services.http_client import fetch_bytes

logger = logging.getLogger(__name__)

LOCAL_CONTENT_TYPE = "application/pdf"

_REMOTE_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class ResolvedAttachment:
    """One attachment ready for a transport to read and encode."""

    filename: str
    source: Path | str
    content_type: str | None = None

    @property
    def is_remote(self) -> bool:
        return isinstance(self.source, str)


def _remote_attachment(identifier: str) -> ResolvedAttachment | None:
    try:
        parsed = urlparse(identifier)
    except ValueError:
        parsed = None
    if parsed is None or not parsed.netloc:
        logger.warning("Skipping attachment with malformed URL: %s", identifier)
        return None
    name = unquote(parsed.path.rsplit("/", 1)[-1]) or "attachment"
    return ResolvedAttachment(filename=name, source=identifier)


def _local_path(identifier: str, root: Path) -> Path | None:
    """Return the file path for *identifier* under *root*, or None if unsafe/missing."""
    if "/" in identifier or "\\" in identifier or identifier in (".", ".."):
        logger.warning("Rejecting attachment outside attachment dir: %s", identifier)
        return None
    root = root.resolve()
    path = (root / identifier).resolve()
    if path.parent != root:
        logger.warning("Rejecting attachment outside attachment dir: %s", identifier)
        return None
    if not path.is_file():
        logger.warning("Attachment not found: %s", path)
        return None
    return path


async def resolve_attachments(
    identifiers: list[str], root: Path
) -> list[ResolvedAttachment]:
    """Resolve *identifiers* in order, skipping any that cannot be used."""
    resolved: list[ResolvedAttachment] = []
    for identifier in identifiers:
        identifier = identifier.strip()
        if not identifier:
            continue
        if _REMOTE_RE.match(identifier):
            remote = _remote_attachment(identifier)
            if remote:
                resolved.append(remote)
            continue
        path = await asyncio.to_thread(_local_path, identifier, root)
        if path is not None:
            resolved.append(
                ResolvedAttachment(
                    filename=identifier, source=path, content_type=LOCAL_CONTENT_TYPE
                )
            )
    return resolved


async def load_attachment_content(
    attachment: ResolvedAttachment,
) -> tuple[bytes, str] | None:
    """Read an attachment fully into memory at send time.

    Returns ``(content, content_type)``, or None when a remote fetch fails
    (the caller sends the message without it).  Local read errors propagate.
    """
    if isinstance(attachment.source, Path):
        data = await asyncio.to_thread(attachment.source.read_bytes)
        return data, attachment.content_type or LOCAL_CONTENT_TYPE

    fetched = await fetch_bytes(str(attachment.source), context="attachment")
    if fetched is None:
        logger.warning("Dropping unreachable attachment %s", attachment.source)
        return None
    content, header_type = fetched
    content_type = attachment.content_type or header_type.split(";")[0].strip()
    if not content_type or content_type == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(attachment.filename)
        content_type = guessed or "application/octet-stream"
    return content, content_type
