"""
Sitemap generation

Renders /sitemap.xml from the posts in the blog store.
"""
import logging
from xml.sax.saxutils import escape

from apps.blog.posts import POST_KEY_PREFIX, utc_now_iso
from apps.shared.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SITEMAP_HEADER = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url>
    <loc>{base_url}</loc>
    <changefreq>daily</changefreq>
    <priority>1.0</priority>
  </url>
  <url>
    <loc>{base_url}/blog</loc>
    <changefreq>daily</changefreq>
    <priority>0.8</priority>
  </url>"""

SITEMAP_POST_ENTRY = """
  <url>
    <loc>{base_url}/blog/{slug}</loc>
    <lastmod>{lastmod}</lastmod>
    <changefreq>weekly</changefreq>
    <priority>0.7</priority>
  </url>"""

SITEMAP_FOOTER = "\n</urlset>"


def lastmod_date(post: dict) -> str:
    """Date portion of lastUpdated, else datePublished, else now."""
    timestamp = post.get("lastUpdated") or post.get("datePublished") or utc_now_iso()
    return str(timestamp).split("T")[0]


def render_sitemap(store: KeyValueStore, base_url: str) -> str:
    """
    Build the sitemap XML.

    Posts without a slug, or that fail to load, are left out.
    """
    base_url = escape(base_url.rstrip("/"))
    parts = [SITEMAP_HEADER.format(base_url=base_url)]

    keys = store.list_keys(prefix=POST_KEY_PREFIX)
    logger.info(f"Adding {len(keys)} posts to sitemap")

    for key in keys:
        try:
            post = store.get(key.name, as_json=True)
            if post and post.get("slug"):
                parts.append(SITEMAP_POST_ENTRY.format(
                    base_url=base_url,
                    slug=escape(str(post["slug"])),
                    lastmod=escape(lastmod_date(post)),
                ))
        except Exception as e:
            logger.error(f"Sitemap entry error for {key.name}: {e}")

    parts.append(SITEMAP_FOOTER)
    return "".join(parts)
