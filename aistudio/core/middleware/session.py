import logging
import secrets
import time
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from aistudio.core.errors import ValidationError
from aistudio.core.logging import short_session_id

DEFAULT_EXCLUDED_PREFIXES = ("/static/", "/_next/", "/favicon.ico")
ONE_YEAR_SECONDS = 60 * 60 * 24 * 365


def new_session_id() -> str:
    """anon_<epoch ms>_<random>, opaque to clients."""
    return f"anon_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


class AnonymousSessionMiddleware(BaseHTTPMiddleware):
    """Give every visitor a long-lived anonymous session cookie.

    The id is exposed to handlers as ``request.state.session_id``. Static
    asset paths are skipped entirely and get no session.
    """

    def __init__(
        self,
        app,
        cookie_name: str = "anon_session",
        max_age: int = ONE_YEAR_SECONDS,
        secure: bool = False,
        excluded_prefixes: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.cookie_name = cookie_name
        self.max_age = max_age
        self.secure = secure
        self.excluded_prefixes = tuple(excluded_prefixes or DEFAULT_EXCLUDED_PREFIXES)

    def _is_excluded(self, path: str) -> bool:
        return any(path == prefix.rstrip("/") or path.startswith(prefix) for prefix in self.excluded_prefixes)

    async def dispatch(self, request, call_next):
        if self._is_excluded(request.url.path):
            return await call_next(request)

        session_id = request.cookies.get(self.cookie_name)
        is_new = not session_id
        if is_new:
            session_id = new_session_id()
            logging.getLogger("aistudio").info(
                "session.created",
                extra={"session_id": short_session_id(session_id), "event_type": "session.created"},
            )
        request.state.session_id = session_id

        response = await call_next(request)

        if is_new:
            response.set_cookie(
                self.cookie_name,
                session_id,
                max_age=self.max_age,
                path="/",
                httponly=True,
                secure=self.secure,
                samesite="lax",
            )
        return response


def get_session_id(request: Request) -> str:
    """FastAPI dependency: the anonymous session id set by the middleware."""
    session_id = getattr(request.state, "session_id", None)
    if not session_id:
        raise ValidationError("Missing anonymous session")
    return session_id
