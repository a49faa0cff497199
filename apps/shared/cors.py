"""CORS handling shared by the auth and blog services."""

import re
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import Response


class CORSPolicy:
    """
    Computes the CORS headers for a request.

    With no origin patterns every response allows "*". With patterns, an
    Origin that matches one of them is echoed back and anything else falls
    back to "*".

    Patterns are regular expressions searched anywhere in the origin, so a
    glob-looking entry such as "https://*.example.dev" does NOT mean "any
    subdomain": "*" repeats the preceding "/" instead.
    """

    def __init__(
        self,
        allow_methods: list[str],
        allow_headers: list[str],
        origin_patterns: Optional[list[str]] = None,
        allow_credentials: bool = False,
    ):
        self.allow_methods = ", ".join(allow_methods)
        self.allow_headers = ", ".join(allow_headers)
        self.allow_credentials = allow_credentials
        self.origin_patterns = [re.compile(p) for p in origin_patterns or []]

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        return any(pattern.search(origin) for pattern in self.origin_patterns)

    def headers_for(self, origin: Optional[str]) -> dict[str, str]:
        echo = self.is_allowed(origin)
        headers = {
            "Access-Control-Allow-Origin": origin if echo else "*",
            "Access-Control-Allow-Methods": self.allow_methods,
            "Access-Control-Allow-Headers": self.allow_headers,
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if echo:
            headers["Vary"] = "Origin"
        return headers


def setup_cors(
    app: FastAPI,
    get_policy: Callable[[], CORSPolicy],
    skip_unrouted: bool = False,
) -> None:
    """
    Answer OPTIONS preflights and add CORS headers to every response.

    With skip_unrouted=True, responses for paths that matched no route are
    left without CORS headers.
    """

    @app.middleware("http")
    async def apply_cors(request: Request, call_next) -> Response:
        headers = get_policy().headers_for(request.headers.get("origin"))

        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)

        response = await call_next(request)

        # The router records the matched endpoint on the shared scope
        if skip_unrouted and "endpoint" not in request.scope:
            return response

        response.headers.update(headers)
        return response
