"""JWT Bearer and API key authentication middleware."""

import hashlib
import logging
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from vantage.config import settings
from vantage.models.enums import PrincipalKind

logger = logging.getLogger(__name__)

_ANONYMOUS = {"sub": "anonymous"}

# Paths that do not require authentication
_PUBLIC_PATHS = {
    "/api/v1/health",
    "/api/v1/health/live",
    "/api/v1/health/ready",
    "/docs",
    "/openapi.json",
    "/redoc",
}


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


def _decode_jwt(token: str) -> dict:
    from jose import JWTError, jwt

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("JWT decode failed: %s", exc)
        raise ValueError(f"Invalid token: {exc}") from exc


class AuthMiddleware(BaseHTTPMiddleware):
    """Validate a Bearer token or X-API-Key and attach the claims to request.state.user.

    Routes decide whether anonymous access is acceptable.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        if path in _PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc"):
            request.state.user = dict(_ANONYMOUS)
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        api_key_header = request.headers.get("x-api-key", "")

        if auth_header.startswith("Bearer "):
            user_info = self._validate_jwt(auth_header[7:])
        elif api_key_header:
            user_info = await self._validate_api_key(api_key_header, request)
        else:
            user_info = dict(_ANONYMOUS)

        request.state.user = user_info
        return await call_next(request)

    def _validate_jwt(self, token: str) -> dict:
        try:
            payload = _decode_jwt(token)
        except ValueError:
            return {**_ANONYMOUS, "_auth_error": "invalid_token"}

        if payload.get("type") == "refresh":
            return {**_ANONYMOUS, "_auth_error": "not_access_token"}

        return {"sub": payload.get("sub", ""), "kind": PrincipalKind.USER.value}

    async def _validate_api_key(self, raw_key: str, request: Request) -> dict:
        session_factory = getattr(request.app.state, "db_session_factory", None)
        if not session_factory:
            return dict(_ANONYMOUS)

        from vantage.repositories.user_repo import ApiKeyRepository

        try:
            async with session_factory() as session:
                api_key = await ApiKeyRepository(session).get_by_hash(hash_api_key(raw_key))
                if not api_key:
                    return {**_ANONYMOUS, "_auth_error": "invalid_api_key"}

                now = datetime.now(timezone.utc)
                expires_at = api_key.expires_at
                if expires_at is not None and expires_at.tzinfo is None:
                    expires_at = expires_at.replace(tzinfo=timezone.utc)
                if expires_at and expires_at < now:
                    return {**_ANONYMOUS, "_auth_error": "expired_api_key"}

                api_key.last_used_at = now
                await session.commit()
                return {"sub": api_key.key_id, "kind": PrincipalKind.API_KEY.value}
        except Exception as exc:
            logger.warning("API key validation error: %s", exc)
            return dict(_ANONYMOUS)
