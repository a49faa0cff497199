"""
Auth Service API

Signup and login backed by a key-value store keyed by email.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.shared.config import Settings, get_settings
from apps.shared.cors import CORSPolicy, setup_cors
from apps.shared.database import get_db, init_db, check_db_connection
from apps.shared.errors import (
    Conflict,
    Internal,
    MissingFields,
    NotFound,
    StoreUnconfigured,
    Unauthorized,
    register_error_handlers,
    setup_internal_error_handler,
)
from apps.shared.kv_store import KeyValueStore, open_store
from apps.shared.payload import read_json_body
from apps.auth.schemas import LoginResponse, SignupResponse, UserRecord

logger = logging.getLogger(__name__)
logging.basicConfig(level=get_settings().log_level)

AUTH_CORS = CORSPolicy(
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.kv_backend == "sql" and settings.database_url:
        init_db(settings.database_url)
    yield


app = FastAPI(
    title="Auth Service",
    version="1.0.0",
    description="User signup and login backed by a key-value store",
    docs_url="/auth/docs",
    openapi_url="/auth/openapi.json",
    lifespan=lifespan,
)

register_error_handlers(app)
setup_internal_error_handler(app, render=lambda exc: Internal(str(exc)).to_dict(), context="Auth request")
# Unknown paths answer a bare 404 without CORS headers
setup_cors(app, lambda: AUTH_CORS, skip_unrouted=True)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return PlainTextResponse("Not Found", status_code=status.HTTP_404_NOT_FOUND)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=exc.headers,
    )


def get_auth_store(
    settings: Settings = Depends(get_settings),
    db=Depends(get_db),
) -> KeyValueStore:
    """Dependency returning the auth key-value store."""
    store = open_store(settings, settings.auth_store_namespace, db)
    if store is None:
        logger.error("Auth store is not available")
        raise StoreUnconfigured(
            "Auth store not configured",
            "The auth storage system is not properly configured",
        )
    return store


@app.get("/health")
def health(settings: Settings = Depends(get_settings)):
    """Health check endpoint - returns service status and store connectivity"""
    if settings.kv_backend == "memory":
        store_status = "memory"
    else:
        store_status = "connected" if check_db_connection(settings.database_url) else "disconnected"
    return {
        "status": "degraded" if store_status == "disconnected" else "ok",
        "service": "auth",
        "store": store_status,
    }


# Router setup
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(
    payload: dict = Depends(read_json_body),
    store: KeyValueStore = Depends(get_auth_store),
):
    """
    Create an account.

    Requires email, password and username; userId is stored as given.
    """
    email = payload.get("email")
    password = payload.get("password")
    username = payload.get("username")

    if not email or not password or not username:
        raise MissingFields("Missing required fields")

    # Keys are strings; non-string emails are stored under their text form
    key = str(email)
    if store.get(key) is not None:
        raise Conflict("User already exists")

    user = UserRecord(
        userId=payload.get("userId"),
        email=email,
        password=password,
        username=username,
    )
    # A concurrent signup may have claimed the email since the check above
    if not store.put_if_absent(key, user.model_dump_json()):
        raise Conflict("User already exists")

    logger.info(f"Created account for {email}")
    return SignupResponse(userId=user.userId, username=user.username).model_dump()


@router.post("/login")
def login(
    payload: dict = Depends(read_json_body),
    store: KeyValueStore = Depends(get_auth_store),
):
    """Check credentials and return the user's profile."""
    email = payload.get("email")
    password = payload.get("password")

    if not email or not password:
        raise MissingFields("Missing email or password")

    stored = store.get(str(email), as_json=True)
    if stored is None:
        raise NotFound("User not found")

    user = UserRecord.model_validate(stored)
    if user.password != password:
        raise Unauthorized("Invalid credentials")

    return LoginResponse(userId=user.userId, email=user.email, username=user.username).model_dump()


app.include_router(router)
