from fastapi import Request
import logging
from starlette.middleware.base import BaseHTTPMiddleware

from community.core.config import settings

logger = logging.getLogger("app")

# Writes on these prefixes are admin-only
ADMIN_WRITE_PREFIXES = (f"{settings.API_V1_STR}/posts",)
ADMIN_READ_PREFIXES = (f"{settings.API_V1_STR}/support",)

class AuthLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # Check for authorization header
        has_auth = bool(request.headers.get("Authorization"))
        path = request.url.path
        method = request.method

        if not has_auth:
            admin_write = method in ("POST", "PUT", "DELETE") and path.startswith(ADMIN_WRITE_PREFIXES) and not path.endswith("/like")
            admin_read = method in ("GET", "PATCH") and path.startswith(ADMIN_READ_PREFIXES)
            if admin_write or admin_read:
                logger.warning(f"Admin endpoint {method} {path} accessed without auth header")

        # Process the request
        response = await call_next(request)

        # Log auth-related status codes
        if response.status_code in [401, 403]:
            logger.warning(f"Auth error: {response.status_code} on {path}")

        return response
