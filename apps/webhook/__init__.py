"""Webhook ingress.

The platform posts every update to ``/bot<token>``.  The token is shared only
between the platform and this service, so the path itself is the only
authentication: anybody who learns it can post forged updates.  No signature
check is performed.

The route decodes the body into :class:`lib.contracts.update.Update`, pushes
it into the :class:`UpdateStream` and answers ``200`` straight away without
waiting for the command to run.  Every rejection, including malformed bodies,
unknown paths and wrong methods, is answered with ``500``.
"""

from __future__ import annotations

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lib.contracts.update import Update
from lib.telemetry.logger import get_logger

from .service import WebhookListener
from .stream import StopFlag, StopToken, StreamClosed, UpdateStream, stop_pair


logger = get_logger(__name__)


async def _reject(request: Request, exc: Exception) -> Response:
    # the request path carries the secret token; log the reason only
    if isinstance(exc, RequestValidationError):
        logger.error("Cannot process the request: invalid update body: %s", exc.errors())
    elif isinstance(exc, StarletteHTTPException):
        logger.error("Cannot process the request: %s %s", exc.status_code, exc.detail)
    else:
        logger.error("Cannot process the request: %r", exc)
    return Response(status_code=500)


def create_app(stream: UpdateStream, path: str) -> FastAPI:
    """Return the ingress application pushing into ``stream``."""

    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.post(path, include_in_schema=False)
    async def receive_update(update: Update) -> Response:
        stream.push(update)
        return Response(status_code=200)

    app.add_exception_handler(RequestValidationError, _reject)
    app.add_exception_handler(StarletteHTTPException, _reject)
    app.add_exception_handler(StreamClosed, _reject)
    return app


__all__ = [
    "StopFlag",
    "StopToken",
    "StreamClosed",
    "UpdateStream",
    "WebhookListener",
    "create_app",
    "stop_pair",
]
