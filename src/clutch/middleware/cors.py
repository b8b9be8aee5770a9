"""Cross-origin access for the web client.

Callers authenticate with a bearer token, never a cookie, so credentials
are not allowed and only the headers the client actually reads are exposed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clutch.config import Settings

SCORING_METHODS = ["GET", "POST", "PATCH", "DELETE"]
CLIENT_HEADERS = ["Authorization", "Content-Type", "X-Request-Id"]
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Limit", "X-RateLimit-Remaining"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=SCORING_METHODS,
        allow_headers=CLIENT_HEADERS,
        expose_headers=EXPOSED_HEADERS,
        max_age=600,
    )
