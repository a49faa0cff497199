"""
Blog Service API

Blog post CRUD and sitemap generation backed by a key-value store.
Posts are stored as JSON under "post:<slug>" keys.
"""
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.blog.posts import (
    build_new_post,
    build_updated_post,
    list_post_summaries,
    post_key,
    with_defaults,
)
from apps.blog.seed import seed_from_settings
from apps.blog.sitemap import render_sitemap
from apps.shared.auth import require_api_key
from apps.shared.config import Settings, get_settings
from apps.shared.cors import CORSPolicy, setup_cors
from apps.shared.database import get_db, init_db, check_db_connection
from apps.shared.errors import (
    Conflict,
    Internal,
    ListHandlerError,
    MethodNotAllowed,
    MissingFields,
    MissingSlug,
    NotFound,
    PostHandlerError,
    StoreUnconfigured,
    handler_error_route,
    register_error_handlers,
    setup_internal_error_handler,
)
from apps.shared.kv_store import KeyValueStore, open_store
from apps.shared.payload import read_json_body

logger = logging.getLogger(__name__)
logging.basicConfig(level=get_settings().log_level)

AVAILABLE_ENDPOINTS = ["/api/blog", "/api/blog/{slug}", "/sitemap.xml"]


@lru_cache
def _cors_policy(origin_patterns: tuple[str, ...]) -> CORSPolicy:
    return CORSPolicy(
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        origin_patterns=list(origin_patterns),
        allow_credentials=True,
    )


def blog_cors_policy() -> CORSPolicy:
    return _cors_policy(tuple(get_settings().blog_allowed_origins))


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.kv_backend == "sql" and settings.database_url:
        init_db(settings.database_url)
    if settings.blog_seed_on_startup:
        seed_from_settings(settings)
    yield


app = FastAPI(
    title="Blog Service",
    version="1.0.0",
    description="Blog post management and sitemap generation",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

register_error_handlers(app)
setup_internal_error_handler(
    app,
    render=lambda exc: Internal(message=str(exc)).to_dict(),
    context="Blog request",
)


@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    logger.info(f"Request: {request.method} {request.url.path}")
    return await call_next(request)


# Setup CORS outermost so every response, errors included, carries it
setup_cors(app, blog_cors_policy)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "Not found",
                "path": request.url.path,
                "availableEndpoints": AVAILABLE_ENDPOINTS,
            },
        )
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return JSONResponse(status_code=exc.status_code, content=MethodNotAllowed().to_dict())
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=exc.headers,
    )


def get_blog_store(
    settings: Settings = Depends(get_settings),
    db=Depends(get_db),
) -> Optional[KeyValueStore]:
    """Dependency returning the blog key-value store, or None if unconfigured."""
    return open_store(settings, settings.blog_store_namespace, db)


def require_blog_store(store: Optional[KeyValueStore] = Depends(get_blog_store)) -> KeyValueStore:
    if store is None:
        logger.error("Blog store is not available")
        raise StoreUnconfigured(
            "Blog store not configured",
            "The blog storage system is not properly configured",
        )
    return store


def post_slug(rest: str) -> str:
    """The slug is the first segment after /api/blog/."""
    slug = rest.split("/")[0]
    if not slug:
        raise MissingSlug()
    return slug


def require_post_fields(payload: dict) -> None:
    if not payload.get("title") or not payload.get("content"):
        raise MissingFields("Missing required fields", "Title and content are required")


@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint - returns service status and store connectivity"""
    if settings.kv_backend == "memory":
        store_status = "memory"
    else:
        store_status = "connected" if check_db_connection(settings.database_url) else "disconnected"
    return {
        "status": "degraded" if store_status == "disconnected" else "ok",
        "service": "blog",
        "store": store_status,
    }


@app.get("/sitemap.xml", include_in_schema=False)
def sitemap(
    store: Optional[KeyValueStore] = Depends(get_blog_store),
    settings: Settings = Depends(get_settings),
):
    """XML sitemap: site root, /blog, and one entry per post."""
    if store is None:
        logger.error("Blog store is not available")
        return PlainTextResponse(
            "Sitemap generation failed: Blog store not configured",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    try:
        xml = render_sitemap(store, settings.site_base_url)
    except Exception as e:
        logger.exception(f"Sitemap generation error: {e}")
        return PlainTextResponse(
            f"Sitemap generation failed: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return Response(content=xml, media_type="application/xml")


# Router setup
# Unexpected failures inside a route answer with that route's own 500 body
list_router = APIRouter(
    prefix="/api/blog",
    tags=["blog"],
    route_class=handler_error_route(ListHandlerError, "Blog list"),
)
post_router = APIRouter(
    prefix="/api/blog",
    tags=["blog"],
    route_class=handler_error_route(PostHandlerError, "Blog post"),
)


# ──────────────────────────────────────────────────────────────────────────────
# Collection endpoints
# ──────────────────────────────────────────────────────────────────────────────

@list_router.get("")
def list_posts(store: KeyValueStore = Depends(require_blog_store)):
    """
    List all posts without their content.
    Sorted by datePublished (newest first).
    """
    posts = list_post_summaries(store)
    logger.info(f"Returning {len(posts)} blog posts")
    return posts


@list_router.post("", status_code=status.HTTP_201_CREATED)
def create_post(
    store: KeyValueStore = Depends(require_blog_store),
    api_key: str = Depends(require_api_key),
    payload: dict = Depends(read_json_body),
):
    """Create a new post. Fails if the slug is already used."""
    if not payload.get("slug"):
        raise MissingSlug("Missing slug", "Slug is required for creating a new post")
    require_post_fields(payload)

    key = post_key(payload["slug"])
    if store.get(key) is not None:
        raise Conflict("Post already exists", "A post with this slug already exists")

    post = build_new_post(payload)
    # A concurrent create may have claimed the slug since the check above
    if not store.put_if_absent(key, post.model_dump_json()):
        raise Conflict("Post already exists", "A post with this slug already exists")

    logger.info(f"Created new post: {post.title}")
    return {
        "success": True,
        "slug": post.slug,
        "message": "Post created successfully",
    }


# ──────────────────────────────────────────────────────────────────────────────
# Single post endpoints
# ──────────────────────────────────────────────────────────────────────────────

@post_router.get("/{rest:path}")
def get_post(
    slug: str = Depends(post_slug),
    store: KeyValueStore = Depends(require_blog_store),
):
    """Get a single post, including its content."""
    post = store.get(post_key(slug), as_json=True)
    if post is None:
        logger.info(f"Post not found for slug: {slug}")
        raise NotFound("Post not found", slug=slug)

    full_post = with_defaults(post, slug, include_content=True)
    logger.info(f"Returning post: {full_post['title']}")
    return full_post


@post_router.put("/{rest:path}")
def update_post(
    slug: str = Depends(post_slug),
    store: KeyValueStore = Depends(require_blog_store),
    api_key: str = Depends(require_api_key),
    payload: dict = Depends(read_json_body),
):
    """
    Create or replace a post.
    The original datePublished is kept; lastUpdated is set to now.
    """
    require_post_fields(payload)

    existing = store.get(post_key(slug), as_json=True)
    post = build_updated_post(slug, payload, existing)
    store.put(post_key(slug), post.model_dump_json())

    logger.info(f"Updated post: {post.title}")
    return {"success": True, "message": "Post updated successfully"}


@post_router.delete("/{rest:path}")
def delete_post(
    slug: str = Depends(post_slug),
    store: KeyValueStore = Depends(require_blog_store),
    api_key: str = Depends(require_api_key),
):
    """Delete a post."""
    if store.get(post_key(slug), as_json=True) is None:
        raise NotFound("Post not found", slug=slug)

    store.delete(post_key(slug))
    logger.info(f"Deleted post with slug: {slug}")
    return {"success": True, "message": "Post deleted successfully"}


@post_router.api_route("/{rest:path}", methods=["POST", "PATCH"], include_in_schema=False)
def unsupported_post_method(
    slug: str = Depends(post_slug),
    store: KeyValueStore = Depends(require_blog_store),
    api_key: str = Depends(require_api_key),
):
    """Other methods on a single post still require the API key first."""
    raise MethodNotAllowed()


app.include_router(list_router)
app.include_router(post_router)
