import importlib
import logging
import pathlib
import traceback
from contextlib import asynccontextmanager

import fastapi.dependencies.utils
import fastapi.routing
from fastapi import APIRouter, FastAPI, HTTPException, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.asyncexitstack import AsyncExitStackMiddleware
from sentry_sdk import capture_exception
from starlette import concurrency as starlette_concurrency
from starlette import status
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.errors import ServerErrorMiddleware
from starlette.middleware.exceptions import ExceptionMiddleware
from starlette.types import ASGIApp

import app.lib.cython_detect  # DO NOT REMOVE
import app.lib.sentry  # noqa: F401
from app.config import ENV, NAME, VERSION
from app.middlewares.api_cors_middleware import APICorsMiddleware
from app.middlewares.auth_middleware import AuthMiddleware
from app.middlewares.exceptions_middleware import ExceptionsMiddleware
from app.middlewares.request_context_middleware import RequestContextMiddleware
from app.utils import HTTP


# HACK: Execute sync functions directly without threadpool
async def _async_wrapper(func, *args, **kwargs):
    return func(*args, **kwargs)


starlette_concurrency.run_in_threadpool = _async_wrapper
fastapi.routing.run_in_threadpool = _async_wrapper
fastapi.dependencies.utils.run_in_threadpool = _async_wrapper

# log when in test environment
if ENV != 'prod':
    logging.info('🦺 Running in %s environment', ENV)


@asynccontextmanager
async def lifespan(_):
    async with HTTP:
        yield


main = FastAPI(
    debug=ENV != 'prod',
    title=NAME,
    version=VERSION,
    lifespan=lifespan,
)

main.add_middleware(APICorsMiddleware)
main.add_middleware(AuthMiddleware)
main.add_middleware(ExceptionsMiddleware)
main.add_middleware(RequestContextMiddleware)


def _make_router(path: pathlib.Path, prefix: str) -> APIRouter:
    """Create a router from all modules in the given path."""
    router = APIRouter(prefix=prefix)
    router_counter: int = 0
    routes_counter: int = 0
    for p in sorted(path.glob('*.py')):
        module_name = p.as_posix().replace('/', '.')[:-3]
        module = importlib.import_module(module_name)
        router_attr: APIRouter | None = getattr(module, 'router', None)
        if not isinstance(router_attr, APIRouter):
            logging.warning('APIRouter not found in %s', module_name)
            continue
        router.include_router(router_attr)
        router_counter += 1
        routes_counter += len(router_attr.routes)
    logging.info(
        'Loaded (%d routers, %d routes) from %s as %r',
        router_counter,
        routes_counter,
        path,
        prefix,
    )
    return router


main.include_router(_make_router(pathlib.Path('app/controllers'), ''))


def _build_middleware_stack(self: Starlette) -> ASGIApp:
    """Build an alternate middleware stack that runs ExceptionMiddleware before user middleware."""
    debug = self.debug
    error_handler = None
    exception_handlers = {}

    for key, value in self.exception_handlers.items():
        if key in (500, Exception):
            error_handler = value
        else:
            exception_handlers[key] = value

    middleware = [
        Middleware(ServerErrorMiddleware, handler=error_handler, debug=debug),
        Middleware(ExceptionMiddleware, handlers=exception_handlers, debug=debug),
        *self.user_middleware,
        Middleware(AsyncExitStackMiddleware),
    ]

    app = self.router
    for cls, args, kwargs in reversed(middleware):
        app = cls(app, *args, **kwargs)
    return app


main.build_middleware_stack = _build_middleware_stack.__get__(main, Starlette)


@main.exception_handler(ExceptionGroup)
async def exception_group_handler(request: Request, exc: ExceptionGroup):
    """Unpack supported exception groups."""
    for e in exc.exceptions:
        if isinstance(e, HTTPException):
            return await http_exception_handler(request, e)

    capture_exception(exc)
    traceback.print_exception(exc.__class__, exc, exc.__traceback__)
    return Response('Internal Server Error', status.HTTP_500_INTERNAL_SERVER_ERROR)
