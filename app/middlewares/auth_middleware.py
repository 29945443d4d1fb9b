from starlette.types import ASGIApp, Receive, Scope, Send

from app.config import AUTH_IDENTITY_HEADER
from app.lib.auth_context import auth_context
from app.middlewares.request_context_middleware import get_request
from app.models.types import CallerId


class AuthMiddleware:
    """Wrap requests in auth context."""

    __slots__ = ('app',)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        # identity is established by the gateway, empty values are anonymous
        identity = get_request().headers.get(AUTH_IDENTITY_HEADER, '').strip()
        with auth_context(CallerId(identity) if identity else None):
            return await self.app(scope, receive, send)
