"""Seed sample blogs into Azure Blob Storage.

Goes through the same slug/SEO derivation and store path as the API, so
re-running it creates suffixed slugs rather than overwriting.

Usage:
    python -m scripts.seed_blogs
    python -m scripts.seed_blogs --reindex   # only rebuild the listing index
"""

import asyncio
import logging
import sys

from site_api.models.blog import Blog
from site_api.services.blog_lifecycle import derive_slug_and_meta
from site_api.services.blog_store import insert_blog, rebuild_index, slug_taken

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

SEED_BLOGS = [
    {
        "title": "How We Plan a Brand Launch in Six Weeks",
        "category": "Branding",
        "tags": ["branding", "process"],
        "content": (
            "<p>Every launch starts with a <strong>discovery sprint</strong>: "
            "two weeks of interviews, audits and competitor teardown.</p>"
            "<p>From there we move into identity, messaging and the launch site, "
            "shipping something reviewable every Friday.</p>"
        ),
    },
    {
        "title": "Performance Budgets for Marketing Sites",
        "category": "Development",
        "tags": ["web", "performance"],
        "content": (
            "<p>A marketing site that takes five seconds to paint is a leaky "
            "funnel. We set a budget before the first mockup.</p>"
            "<ul><li>Largest Contentful Paint under 2.5s</li>"
            "<li>Under 150KB of JavaScript on landing pages</li></ul>"
        ),
    },
    {
        "title": "Writing Case Studies Clients Actually Read",
        "category": "Content",
        "tags": ["content", "storytelling"],
        "meta_desc": "Structure, length and the one chart every case study needs.",
        "content": (
            "<p>Lead with the outcome, then earn it. A case study is a story "
            "with a before, a turn, and an after.</p>"
        ),
    },
]


async def main() -> int:
    if "--reindex" in sys.argv:
        count = await rebuild_index()
        print(f"Indexed {count} blogs.")
        return 0

    created = 0
    for data in SEED_BLOGS:
        blog = await derive_slug_and_meta(Blog(**data), slug_taken, title_changed=True)
        await insert_blog(blog)
        print(f"  {blog.slug}  ({blog.category})")
        created += 1
    print(f"\nSeeded {created} blogs.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
