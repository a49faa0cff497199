"""
Blog post records

Helpers for building, defaulting and ordering post records. Records are
stored as JSON under "post:<slug>" keys.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from apps.blog.schemas import BlogPost
from apps.shared.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

POST_KEY_PREFIX = "post:"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def post_key(slug: str) -> str:
    return f"{POST_KEY_PREFIX}{slug}"


def slug_from_key(key: str) -> str:
    return key[len(POST_KEY_PREFIX):] if key.startswith(POST_KEY_PREFIX) else key


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with milliseconds, e.g. 2026-01-31T09:15:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 timestamp for ordering.

    Naive values are taken as UTC; missing or unparseable values sort as the
    oldest possible time.
    """
    if not isinstance(value, str) or not value:
        return _OLDEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def with_defaults(post: dict, slug: str, include_content: bool) -> dict:
    """
    Fill in fields missing from a stored record.

    Stored values always win, even when falsy; only absent keys get a default.
    """
    defaults = {
        "title": "Untitled",
        "slug": slug,
        "metaDescription": "No description available",
        "metaKeywords": [],
        "coverImageUrl": "",
        "author": "Unknown",
        "datePublished": utc_now_iso(),
        "lastUpdated": None,
    }
    if include_content:
        defaults["content"] = ""

    merged = {**defaults, **post}
    if not include_content:
        merged.pop("content", None)
    return merged


def list_post_summaries(store: KeyValueStore) -> list[dict]:
    """
    All posts without their content, newest datePublished first.

    A record that cannot be read is logged and skipped. Posts with equal
    dates keep the store's key order.
    """
    keys = store.list_keys(prefix=POST_KEY_PREFIX)
    logger.info(f"Found {len(keys)} blog post keys")

    posts = []
    for key in keys:
        try:
            post = store.get(key.name, as_json=True)
            if post is None:
                continue
            if not isinstance(post, dict):
                raise ValueError("stored value is not a JSON object")
            posts.append(with_defaults(post, slug_from_key(key.name), include_content=False))
        except Exception as e:
            logger.error(f"Error processing {key.name}: {e}")

    posts.sort(key=lambda p: parse_timestamp(p.get("datePublished")), reverse=True)
    return posts


def build_new_post(payload: dict, now: Optional[str] = None) -> BlogPost:
    """Record for a freshly created post."""
    return BlogPost(
        title=payload["title"],
        slug=payload["slug"],
        metaDescription=payload.get("metaDescription") or "",
        metaKeywords=payload.get("metaKeywords") or [],
        coverImageUrl=payload.get("coverImageUrl") or "",
        author=payload.get("author") or "Unknown",
        content=payload["content"],
        datePublished=now or utc_now_iso(),
        lastUpdated=None,
    )


def build_updated_post(slug: str, payload: dict, existing: Optional[dict], now: Optional[str] = None) -> BlogPost:
    """
    Replacement record for PUT.

    datePublished comes from the existing record, else the payload, else now;
    lastUpdated is always now.
    """
    now = now or utc_now_iso()
    date_published = (existing or {}).get("datePublished") or payload.get("datePublished") or now
    return BlogPost(
        title=payload["title"],
        slug=slug,
        metaDescription=payload.get("metaDescription") or "",
        metaKeywords=payload.get("metaKeywords") or [],
        coverImageUrl=payload.get("coverImageUrl") or "",
        author=payload.get("author") or "Unknown",
        content=payload["content"],
        datePublished=date_published,
        lastUpdated=now,
    )
