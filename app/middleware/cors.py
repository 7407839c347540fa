"""
CORS Middleware for the dashboard origin.

The dashboard is served from a different local port than the relay, so browsers
send preflight OPTIONS requests before every JSON POST/PUT. Only HTTP traffic
passes through here; the /ws socket is not subject to CORS.

Usage:
    from app.middleware.cors import CORSMiddleware

    app.add_middleware(CORSMiddleware, allowed_origins=["http://localhost:8080"])
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_METHODS = ["GET", "POST", "PUT", "PATCH", "OPTIONS"]
DEFAULT_HEADERS = ["Accept", "Content-Type", "Authorization", "X-Requested-With"]


class CORSMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        allowed_origins: list[str] | None = None,
        allow_methods: list[str] | None = None,
        allow_headers: list[str] | None = None,
        max_age: int = 600,
    ):
        super().__init__(app)
        self.allowed_origins = allowed_origins or []
        self.allow_methods = allow_methods or DEFAULT_METHODS
        self.allow_headers = allow_headers or DEFAULT_HEADERS
        self.max_age = max_age

        logger.info("CORS middleware initialized", allowed_origins=self.allowed_origins)

    def is_allowed(self, origin: str | None) -> bool:
        return bool(origin) and ("*" in self.allowed_origins or origin in self.allowed_origins)

    async def dispatch(self, request, call_next):
        origin = request.headers.get("origin")
        allowed = self.is_allowed(origin)

        if request.method == "OPTIONS" and origin:
            if not allowed:
                logger.warning("CORS preflight rejected - origin not allowed", origin=origin)
                return Response(status_code=403, content="Origin not allowed")
            return self._preflight_response(origin)

        response = await call_next(request)

        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        elif origin:
            logger.warning(
                "CORS request from disallowed origin", origin=origin, path=request.url.path
            )

        return response

    def _preflight_response(self, origin: str) -> Response:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Methods": ", ".join(self.allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.allow_headers),
            "Access-Control-Max-Age": str(self.max_age),
            "Vary": "Origin",
        }
        return Response(status_code=204, headers=headers)
