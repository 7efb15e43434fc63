"""Best-effort blog translation.

Translation never turns a successful fetch into an error.  Each blog is
translated as a unit: if any of its fields fails, the whole blog comes
back as ``Fallback`` carrying the original content, and callers unwrap
either result to a ``Blog``.  Listing translations run concurrently so a
slow or failing item never holds back its siblings' results.
"""

import asyncio
import logging
from dataclasses import dataclass

from site_api.config import get_settings
from site_api.models.blog import Blog
from site_api.services.llm import chat_completion

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
}

LIST_FIELDS = ("title", "content", "meta_title", "meta_desc")
DETAIL_FIELDS = ("title", "content", "category", "meta_title", "meta_desc")

SYSTEM_PROMPT = (
    "You are a professional translator for a company blog. Translate the "
    "user's text from {source} to {target}. Preserve all HTML tags, "
    "attributes, URLs and line breaks exactly; translate only human-readable "
    "text. Reply with the translated text and nothing else."
)


class TranslationError(Exception):
    """The translation collaborator could not translate a piece of text."""


@dataclass(frozen=True)
class Translated:
    blog: Blog


@dataclass(frozen=True)
class Fallback:
    blog: Blog
    reason: str


TranslationResult = Translated | Fallback


def _language_name(code: str) -> str:
    return LANGUAGE_NAMES.get(code, code)


def wants_translation(lang: str | None) -> bool:
    """True when *lang* is a supported, non-default target language."""
    settings = get_settings()
    if not lang or lang == settings.default_language:
        return False
    if lang not in settings.translation_languages:
        logger.info("Unsupported translation language %r, serving original", lang)
        return False
    return True


async def translate_text(text: str, source: str, target: str) -> str:
    """Translate *text*; empty input is returned as-is.

    Raises:
        TranslationError: On API failure or an empty reply.
    """
    if not text or not text.strip():
        return text
    settings = get_settings()
    try:
        translated = await chat_completion(
            text,
            system=SYSTEM_PROMPT.format(
                source=_language_name(source), target=_language_name(target)
            ),
            max_tokens=settings.translation_max_tokens,
            temperature=0.2,
        )
    except Exception as e:
        raise TranslationError(str(e)) from e
    if not translated.strip():
        raise TranslationError("empty translation")
    return translated.strip()


async def translate_blog(
    blog: Blog, target: str, fields: tuple[str, ...] = LIST_FIELDS
) -> TranslationResult:
    """Translate *fields* of *blog* into *target*, or fall back to the original."""
    source = get_settings().default_language
    values = await asyncio.gather(
        *(translate_text(getattr(blog, name), source, target) for name in fields),
        return_exceptions=True,
    )
    for name, value in zip(fields, values):
        if isinstance(value, BaseException):
            logger.warning(
                "Translation of blog %s (%s) to %s failed: %s", blog.slug, name, target, value
            )
            return Fallback(blog=blog, reason=f"{name}: {value}")
    return Translated(blog=blog.model_copy(update=dict(zip(fields, values))))


def unwrap(result: TranslationResult) -> Blog:
    return result.blog


async def translate_blogs(blogs: list[Blog], target: str) -> list[Blog]:
    """Translate a page of blogs concurrently, preserving order."""
    results = await asyncio.gather(*(translate_blog(b, target) for b in blogs))
    fallbacks = sum(1 for r in results if isinstance(r, Fallback))
    if fallbacks:
        logger.info("%d of %d blogs served untranslated", fallbacks, len(blogs))
    return [unwrap(r) for r in results]
