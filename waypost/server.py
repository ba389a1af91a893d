"""FastAPI adapter that forwards every request into a waypost application."""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response as HTTPResponse

from waypost.app import Application, load_application
from waypost.config import load_effective_config, load_yaml_dict
from waypost.logging_utils import apply_router_logging

HTTP_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def create_app(application: Application) -> FastAPI:
    app = FastAPI(title="Waypost", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.waypost = application

    @app.api_route("/{full_path:path}", methods=HTTP_METHODS, include_in_schema=False)
    async def dispatch(request: Request, full_path: str) -> HTTPResponse:
        _ = full_path
        body = await request.body()
        # captures are decoded once, by the router
        raw_path = request.scope.get("raw_path", b"").decode("latin-1").split("?", 1)[0]
        # dispatch is blocking; each request runs to completion on a worker thread
        response = await run_in_threadpool(
            application.handle,
            raw_path or request.url.path,
            request.method,
            query_string=request.url.query,
            headers=dict(request.headers),
            body=body,
            client_host=request.client.host if request.client else None,
        )
        return HTTPResponse(
            content=response.body,
            status_code=response.status,
            headers=response.headers,
            media_type=response.media_type,
        )

    return app


def create_app_from_env() -> FastAPI:
    """Factory for ``serve --reload``; mirrors the CLI config flags via ``WAYPOST_*`` variables."""
    config = load_effective_config(
        project_path=os.environ.get("WAYPOST_PROJECT_PATH", "."),
        system_defaults=load_yaml_dict(os.environ.get("WAYPOST_SYSTEM_CONFIG")),
        runtime_override=load_yaml_dict(os.environ.get("WAYPOST_RUNTIME_OVERRIDE")),
    )
    apply_router_logging(config.router.debug, os.environ.get("WAYPOST_LOG_FILE") or config.router.log_file)
    return create_app(load_application(os.environ.get("WAYPOST_APP"), config))
