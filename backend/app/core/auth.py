"""Authentication utilities.

Users are identified by the id their identity provider issued them
(e.g. a Clerk user id), passed in the ``X-User-Id`` header. Requests
without the header act as the shared guest user.

WARNING: the header is trusted as-is. Token verification must be added
in front of this before production use.
"""

from typing import Annotated

from fastapi import Depends, Request, WebSocket

# Default guest identity - used when no identity header is sent
GUEST_EXTERNAL_ID = "guest"
USER_ID_HEADER = "X-User-Id"


def get_auth_user(request: Request) -> str:
    """Get the external identity id for HTTP requests.

    Args:
        request: HTTP request object (injected by FastAPI)

    Returns:
        External user id (str)
    """
    return request.headers.get(USER_ID_HEADER) or GUEST_EXTERNAL_ID


def get_auth_user_from_ws(websocket: WebSocket) -> str:
    """Get the external identity id for WebSocket connections.

    Browsers cannot set headers on WebSocket handshakes, so the
    ``user_id`` query parameter is accepted as well.
    """
    return (
        websocket.headers.get(USER_ID_HEADER)
        or websocket.query_params.get("user_id")
        or GUEST_EXTERNAL_ID
    )


# Type alias for FastAPI dependency
CurrentUserDep = Annotated[str, Depends(get_auth_user)]
