import time
import uuid

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import HTTP_REQUESTS_TOTAL, HTTP_REQUEST_DURATION_SECONDS
from env import SERVICE_NAME


REQUEST_ID_HEADER = "X-Request-ID"


def _route_template(request: Request) -> str:
    # set by the router during call_next; unmatched paths fall back to the raw path
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def _observe(request: Request, status_code: int, elapsed: float) -> None:
    path = _route_template(request)
    HTTP_REQUESTS_TOTAL.labels(
        service=SERVICE_NAME,
        method=request.method,
        path=path,
        status_code=str(status_code),
    ).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(
        service=SERVICE_NAME,
        method=request.method,
        path=path,
    ).observe(elapsed)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags every log line of a request with its request id and writes one
    access record per request. Order and stock log lines emitted by the
    services can be joined back to the HTTP call through ``request_id``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                elapsed = time.perf_counter() - started
                logger.exception(
                    "Unhandled error on {method} {path}",
                    method=request.method,
                    path=request.url.path,
                )
                _observe(request, 500, elapsed)
                raise

            elapsed = time.perf_counter() - started
            logger.bind(
                method=request.method,
                path=request.url.path,
                route=_route_template(request),
                status_code=response.status_code,
                duration_ms=round(elapsed * 1000, 2),
            ).info("http_request_processed")
            _observe(request, response.status_code, elapsed)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
