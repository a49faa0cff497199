"""Request body parsing shared by the services."""

from fastapi import Request


async def read_json_body(request: Request) -> dict:
    """
    Dependency returning the request body as a JSON object.

    The body is not pre-validated: malformed JSON raises the parser's
    ValueError, which the service turns into a 500 carrying its message.
    """
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body
