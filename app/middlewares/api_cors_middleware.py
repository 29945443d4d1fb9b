from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.config import CORS_MAX_AGE, CORS_ORIGINS
from app.middlewares.request_context_middleware import get_request


class APICorsMiddleware:
    """Enable CORS for API requests from the configured origins."""

    __slots__ = ('app', 'cors')

    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        self.cors = CORSMiddleware(
            app,
            allow_origins=[origin for o in CORS_ORIGINS.split(',') if (origin := o.strip())],
            allow_methods=['GET', 'POST', 'DELETE'],
            allow_headers=['*'],
            allow_credentials=True,
            max_age=int(CORS_MAX_AGE.total_seconds()),
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope['type'] != 'http':
            return await self.app(scope, receive, send)

        app = self.cors if get_request().url.path.startswith('/api/') else self.app
        return await app(scope, receive, send)
