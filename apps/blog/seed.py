#!/usr/bin/env python3
"""
Blog seed data

Creates a welcome post so a fresh deployment has something to show.
Seeding is always explicit: run this module, or set BLOG_SEED_ON_STARTUP=true
for the blog service. An existing welcome post is never overwritten.

Usage:
    python -m apps.blog.seed
"""
import logging
import sys

from apps.blog.posts import post_key, utc_now_iso
from apps.blog.schemas import BlogPost
from apps.shared.config import Settings, get_settings
from apps.shared.database import get_session_factory, init_db
from apps.shared.kv_store import KeyValueStore, open_store

logger = logging.getLogger(__name__)


def welcome_post() -> BlogPost:
    return BlogPost(
        title="Welcome to Our Blog",
        slug="welcome-to-our-blog",
        metaDescription="This is our first blog post to test the system.",
        metaKeywords=["welcome", "blog", "test"],
        coverImageUrl="https://via.placeholder.com/600x300",
        author="Admin",
        content="<h1>Welcome!</h1><p>This is a test blog post to ensure everything is working correctly.</p>",
        datePublished=utc_now_iso(),
        lastUpdated=None,
    )


def seed_welcome_post(store: KeyValueStore) -> bool:
    """
    Store the welcome post unless its slug is already taken.

    Returns True if the post was created.
    """
    post = welcome_post()
    created = store.put_if_absent(post_key(post.slug), post.model_dump_json())
    if created:
        logger.info(f"Seeded post: {post.title}")
    else:
        logger.info(f"Seed post already present: {post.slug}")
    return created


def seed_from_settings(settings: Settings) -> bool:
    """Open the configured blog store and seed it."""
    if settings.kv_backend == "memory":
        return seed_welcome_post(open_store(settings, settings.blog_store_namespace, None))

    if not settings.database_url:
        raise RuntimeError("DATABASE_URL must be set to seed the blog store")

    init_db(settings.database_url)
    db = get_session_factory(settings.database_url)()
    try:
        return seed_welcome_post(open_store(settings, settings.blog_store_namespace, db))
    finally:
        db.close()


def main() -> int:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    try:
        created = seed_from_settings(settings)
    except Exception as e:
        logger.exception(f"Seeding failed: {e}")
        return 1
    print("Welcome post created" if created else "Welcome post already exists")
    return 0


if __name__ == "__main__":
    sys.exit(main())
