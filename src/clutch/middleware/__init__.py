"""HTTP plumbing shared by every scoring route.

Request flow, outermost first: CORS, request id and access log, rate
limit, then the routers. Service errors are turned into JSON by the
handlers in ``error_handler``.
"""

from fastapi import FastAPI

from clutch.config import Settings
from clutch.middleware.cors import setup_cors
from clutch.middleware.error_handler import setup_error_handlers
from clutch.middleware.logging import setup_logging
from clutch.middleware.rate_limit import RateLimitMiddleware
from clutch.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    setup_logging(settings)
    setup_error_handlers(app)

    # Starlette wraps in reverse-add order: the last one added runs first.
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
