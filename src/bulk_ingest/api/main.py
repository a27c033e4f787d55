"""
FastAPI application.

POST /bulkcontent accepts a tar (optionally gzip-compressed) archive of
envelopes as the raw request body and answers 204 once every envelope has
been stored (or has failed) and removed content has been reconciled.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from bulk_ingest.api.body import RequestBodyReader
from bulk_ingest.config import LOG_FORMAT, Settings
from bulk_ingest.errors import BulkIngestError
from bulk_ingest.pipelines.batch import BatchCoordinator
from bulk_ingest.store.base import ContentStore
from bulk_ingest.store.sqlite import SQLiteContentStore

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ContentStore:
    """Create the SQLite store lazily, on first use rather than at import."""
    state = request.app.state
    if state.store is None:
        state.store = SQLiteContentStore(state.settings.db_path)
    return state.store


async def _pump_body(request: Request, reader: RequestBodyReader):
    try:
        async for chunk in request.stream():
            if chunk and not await run_in_threadpool(reader.feed, chunk):
                return
    except ClientDisconnect as e:
        logger.info("Client disconnected during bulk upload")
        await run_in_threadpool(reader.fail, e)
        return
    except Exception as e:
        await run_in_threadpool(reader.fail, e)
        raise
    await run_in_threadpool(reader.finish)


async def bulk_content(
    request: Request,
    store: ContentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    apikey_name: str = Header("anonymous", alias="X-Apikey-Name"),
):
    reader = RequestBodyReader(settings.body_queue_size)
    coordinator = BatchCoordinator(store, settings, principal=apikey_name)
    pump = asyncio.ensure_future(_pump_body(request, reader))
    try:
        await run_in_threadpool(coordinator.run, reader)
    finally:
        reader.abandon()
        await pump
    return Response(status_code=204)


async def bulk_ingest_error_handler(request: Request, exc: BulkIngestError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(settings: Optional[Settings] = None, store: Optional[ContentStore] = None) -> FastAPI:
    app = FastAPI(
        title="Bulk Content Ingest API",
        description="Bulk upload of content metadata envelopes",
        version="1.0.0",
    )
    app.state.settings = settings or Settings.from_env()
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BulkIngestError, bulk_ingest_error_handler)
    app.add_api_route("/bulkcontent", bulk_content, methods=["POST"], status_code=204)

    @app.get("/ping")
    async def ping():
        """Health check endpoint."""
        return {"message": "pong"}

    return app


_settings = Settings.from_env()
logging.basicConfig(level=_settings.log_level, format=LOG_FORMAT)

app = create_app(_settings)
