from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .dispatcher import WebhookRequest
from .log import configure_logging, log_json

if TYPE_CHECKING:
    from .sdk import KiketSDK

__all__ = ["create_app"]


def create_app(sdk: KiketSDK) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        app.state.start_time = time.monotonic()
        log_json(
            logging.INFO,
            "extension.started",
            extension_id=sdk.config.extension_id,
            auth_mode=sdk.config.auth_mode,
            registered_events=sdk.registry.event_names(),
        )
        try:
            yield
        finally:
            sdk.telemetry.close()

    app = FastAPI(title="Kiket Extension", lifespan=lifespan)
    app.state.sdk = sdk

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        request_id = request.headers.get("x-request-id", "").strip() or uuid.uuid4().hex
        request.state.request_id = request_id
        start = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            latency_ms = int((time.monotonic() - start) * 1000)
            log_json(
                logging.ERROR,
                "request.failed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                latency_ms=latency_ms,
            )
            raise
        latency_ms = int((time.monotonic() - start) * 1000)
        response.headers["x-request-id"] = request_id
        log_json(
            logging.INFO,
            "request.completed",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return response

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "extension_id": sdk.config.extension_id,
            "extension_version": sdk.config.extension_version,
            "registered_events": sdk.registry.event_names(),
        }

    @app.post("/webhooks/{event}")
    async def webhook(event: str, request: Request) -> JSONResponse:
        return await _dispatch(sdk, request, event, None)

    @app.post("/v/{version}/webhooks/{event}")
    async def versioned_webhook(version: str, event: str, request: Request) -> JSONResponse:
        return await _dispatch(sdk, request, event, version)

    return app


async def _dispatch(sdk: KiketSDK, request: Request, event: str, path_version: str | None) -> JSONResponse:
    body = await request.body()
    webhook_request = WebhookRequest(
        event=event,
        body=body,
        headers={k.lower(): v for k, v in request.headers.items()},
        path_version=path_version,
        query=dict(request.query_params),
    )
    result = await run_in_threadpool(sdk.dispatcher.dispatch, webhook_request)
    return JSONResponse(status_code=result.status_code, content=result.body)
