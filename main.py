"""
Entrypoint for the AlertKeeper internal alert management service.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager

import uvloop
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import config
from middleware.error_handlers import general_exception_handler, validation_exception_handler
from routers.management import alerting_rules_router, relabel_configs_router
from routers.management.state import get_controller, shutdown_controller

asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("alertkeeper")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info(
        "Starting with store backend %s, owner label %s=%s, managed group %s",
        config.STORE_BACKEND,
        config.RESOURCE_OWNER_LABEL_KEY,
        config.RESOURCE_OWNER_LABEL_VALUE,
        config.MANAGED_RULE_GROUP_NAME,
    )
    yield
    await shutdown_controller()


app = FastAPI(
    title="AlertKeeper",
    description="Internal alert management service for shared PrometheusRule documents",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if config.ENABLE_API_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_API_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_API_DOCS else None,
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.middleware("http")
async def require_internal_service_token(request: Request, call_next):
    allowed_paths = set(config.PUBLIC_PATHS)
    if config.ENABLE_API_DOCS:
        allowed_paths.update({"/docs", "/redoc", "/openapi.json"})
    if request.url.path in allowed_paths:
        return await call_next(request)
    expected = config.SERVICE_TOKEN
    if not expected:
        if config.IS_PRODUCTION:
            return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Service token not configured"})
        return await call_next(request)
    provided = request.headers.get("X-Service-Token")
    if not provided or not secrets.compare_digest(provided, expected):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Forbidden"})
    return await call_next(request)


app.include_router(alerting_rules_router, prefix="/internal/v1/alert-management")
app.include_router(relabel_configs_router, prefix="/internal/v1/alert-management")


@app.get("/health")
async def health() -> dict:
    return {"status": "healthy", "service": "alertkeeper"}


@app.get("/ready")
async def ready():
    try:
        await get_controller().rule_store.list()
        checks = {"store": True}
    except Exception as exc:
        logger.warning("Readiness check failed: %s", exc)
        checks = {"store": False}
    ok = all(checks.values())
    payload = {"status": "ready" if ok else "not_ready", "checks": checks}
    if not ok:
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=payload)
    return payload


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT, loop="uvloop", log_level=config.LOG_LEVEL)
