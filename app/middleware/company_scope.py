# ==== COMPANY SCOPE MIDDLEWARE ==== #

"""
Company scope middleware for request isolation in Credit Gate.

Every credit endpoint is evaluated inside one company. The company comes from
the ``X-Company-Id`` header, is validated as a positive integer and injected
into the request scope for downstream handlers.
"""

from fastapi import Request
from starlette.types import ASGIApp, Scope, Receive, Send


COMPANY_HEADER = b"x-company-id"


# ==== UTILITY FUNCTIONS ==== #

def get_company_id(request: Request) -> int:
    """
    Extract the company id from request scope.

    Args:
        request (Request): FastAPI request object with company context

    Returns:
        int: Company id injected by the middleware
    """
    return request.scope["company_id"]


def parse_company_id(raw: bytes | None) -> int | None:
    """Parse a header value as a positive integer; None when malformed."""
    if not raw:
        return None
    text = raw.decode("latin-1").strip()
    if not (text.isascii() and text.isdigit()) or len(text) > 18:
        return None
    company_id = int(text)
    return company_id if company_id > 0 else None


# ==== COMPANY SCOPE MIDDLEWARE CLASS ==== #

class CompanyScopeMiddleware:
    """
    Middleware to extract and validate the company scope.

    Requests without a valid ``X-Company-Id`` header are rejected with 400
    before reaching any handler, except on exempt paths.
    """

    def __init__(self, app: ASGIApp):
        """
        Initialize company scope middleware.

        Args:
            app (ASGIApp): ASGI application instance
        """
        self.app = app

        # --► PATHS EXEMPT FROM COMPANY VALIDATION
        self.exempt_paths = {
            "/healthz",
            "/readyz",
            "/metrics",
            "/docs",
            "/redoc",
            "/openapi.json"
        }

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """
        Process ASGI request with company validation and scope injection.

        Args:
            scope (Scope): ASGI scope containing request metadata
            receive (Receive): ASGI receive callable for request data
            send (Send): ASGI send callable for response data
        """
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # ⚠️ Always allow OPTIONS requests (CORS preflight)
        if scope["method"] == "OPTIONS" or scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        # --► COMPANY ID EXTRACTION FROM HEADERS
        headers = dict(scope["headers"])
        raw_company_id = headers.get(COMPANY_HEADER)

        if not raw_company_id:
            await self._send_error_response(send, 400, '{"detail":"Missing X-Company-Id header"}')
            return

        company_id = parse_company_id(raw_company_id)
        if company_id is None:
            await self._send_error_response(send, 400, '{"detail":"Invalid X-Company-Id format"}')
            return

        scope["company_id"] = company_id
        await self.app(scope, receive, send)

    async def _send_error_response(self, send: Send, status: int, body: str) -> None:
        """Send an HTTP error response directly through ASGI."""
        await send({
            "type": "http.response.start",
            "status": status,
            "headers": [
                [b"content-type", b"application/json"],
            ],
        })
        await send({
            "type": "http.response.body",
            "body": body.encode(),
        })
