"""prefixfs API: a folder view over a flat object store."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from prefixfs.api.folders import app_folders
from prefixfs.api.metrics import app_metrics
from prefixfs.connections import close_connections, start_connections
from prefixfs.objectstore.gateway import GatewayError


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.info("Connecting to object store...")
    await start_connections()
    yield
    await close_connections()


app = FastAPI(
    title="prefixfs",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="folders", description="Endpoints to list, create, rename, delete and search folders and documents"),
        dict(name="metrics", description="Endpoints to page through or export user metrics"),
    ],
    lifespan=lifespan,
)
app.include_router(app_folders)
app.include_router(app_metrics)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.exception_handler(ValueError)
async def value_error_exception_handler(request: Request, exc: ValueError):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc)},
    )


@app.exception_handler(GatewayError)
async def gateway_error_exception_handler(request: Request, exc: GatewayError):
    # pass on client errors of the store (e.g. 404 for a missing key), anything else is a bad gateway
    status = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else 502
    return JSONResponse(
        status_code=status,
        content={"message": str(exc)},
    )
