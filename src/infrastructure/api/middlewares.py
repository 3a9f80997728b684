from __future__ import annotations

import logging

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import HTTPConnection
from starlette.types import ASGIApp, Receive, Scope, Send

from src.config import Settings, get_settings

logger = logging.getLogger(__name__)


class CredentialForwardingMiddleware:
    """Copy the session cookie into a request header on guarded paths.

    Page guards downstream verify the header; this layer only moves the token.
    Any copy of the header sent by the client is dropped on guarded paths, so
    the header is present exactly when the cookie is.
    """

    def __init__(
        self,
        app: ASGIApp,
        cookie_name: str,
        header_name: str,
        path_prefixes: tuple[str, ...],
    ) -> None:
        self.app = app
        self.cookie_name = cookie_name
        self.header_key = header_name.lower().encode("latin-1")
        self.path_prefixes = path_prefixes

    def is_guarded(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.path_prefixes)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.is_guarded(scope["path"]):
            await self.app(scope, receive, send)
            return

        token = HTTPConnection(scope).cookies.get(self.cookie_name)
        headers = [(k, v) for k, v in scope["headers"] if k.lower() != self.header_key]
        if token:
            headers.append((self.header_key, token.encode("latin-1")))
        else:
            logger.debug("No session cookie on guarded path %s", scope["path"])
        await self.app(dict(scope, headers=headers), receive, send)


def add_default_middlewares(app: FastAPI, settings: Settings | None = None) -> None:
    settings = settings or get_settings()

    app.add_middleware(
        CredentialForwardingMiddleware,
        cookie_name=settings.session_cookie_name,
        header_name=settings.forwarded_token_header,
        path_prefixes=settings.guarded_path_prefixes,
    )

    # CORS configuration
    if settings.env in ("development", "staging"):
        allowed_origins = [
            "http://localhost:3000",
            "http://localhost:3001",
            "http://localhost:5173",  # Vite default
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
            "http://127.0.0.1:5173",
        ]
    else:
        allowed_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
