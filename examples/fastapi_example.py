"""Example FastAPI application reporting unhandled errors.

Run with:
    FAULTLINE_ENDPOINT=https://submit.backtrace.io/<universe>/<token>/json \
        uvicorn examples.fastapi_example:app --reload

Endpoints:
    /             - Returns a greeting and leaves a breadcrumb
    /divide?b=0   - Raises ZeroDivisionError, reported with request attributes
    /health       - Excluded from reporting

Reports are sent without blocking the request; the client drains
in-flight reports on shutdown.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from faultline import FaultlineHandler, ReportClient, SQLiteKeyValueStore
from faultline.adapters.frameworks.asgi import ASGIErrorReportingMiddleware

client = ReportClient(
    {
        "endpoint": os.environ["FAULTLINE_ENDPOINT"],
        "rateLimit": 10,
        "breadcrumbLimit": 50,
        "userAttributes": {"service": "fastapi-example"},
    },
    store=SQLiteKeyValueStore("faultline-state.db"),
)

# Logged exceptions become reports, other records become breadcrumbs
logging.getLogger().addHandler(FaultlineHandler(client))
logging.getLogger().setLevel(logging.INFO)
logger = logging.getLogger("examples.fastapi")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await client.start()
    yield
    await client.close()


app = FastAPI(title="Error Reporting Example", lifespan=lifespan)
app.add_middleware(
    ASGIErrorReportingMiddleware, client=client, exclude_paths=["/health"]
)


@app.get("/")
async def root() -> dict[str, str]:
    client.leave_breadcrumb("Greeting requested")
    return {"message": "Hello! Try /divide?b=0 to report an error."}


@app.get("/divide")
async def divide(a: int = 1, b: int = 1) -> dict[str, float]:
    """Divide a by b; b=0 raises and is reported by the middleware."""
    logger.info("Dividing %s by %s", a, b)
    return {"result": a / b}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
