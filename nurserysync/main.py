"""HTTP surface exposing the catalog session to presentation clients."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field

from .config import settings
from .errors import (
    CatalogError,
    MediaUploadError,
    NotFoundError,
    SchemaError,
    TransportError,
    ValidationError,
)
from .session import CatalogSession

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

MAX_PAGES_PER_REQUEST = 50

app: FastAPI


class MediaUpdate(BaseModel):
    """Body of a media replacement request."""

    media_ref: str = Field(validation_alias=AliasChoices("mediaRef", "media_ref"))


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    session = await exit_stack.enter_async_context(CatalogSession.create(settings))
    fastapi_app.state.catalog_session = session
    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Plant nursery catalog with cached, paginated queries",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_session(fastapi_app: FastAPI) -> CatalogSession:
    session = getattr(fastapi_app.state, "catalog_session", None)
    if not isinstance(session, CatalogSession):
        raise RuntimeError("Catalog session not initialised")
    return session


def _http_error(exc: CatalogError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, (TransportError, SchemaError, MediaUploadError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/plants")
    async def list_plants(
        search: str | None = None,
        type: str | None = None,
        sun_exposure: str | None = Query(default=None, alias="sunExposure"),
        wind_tolerance: str | None = Query(default=None, alias="windTolerance"),
        flowering_season: str | None = Query(default=None, alias="floweringSeason"),
        acquired: bool | None = None,
        sort: str = "name",
        direction: str = "asc",
        pages: int = Query(default=1, ge=1, le=MAX_PAGES_PER_REQUEST),
    ) -> dict[str, Any]:
        session = get_catalog_session(fastapi_app)
        filters = {
            "search": search,
            "type": type,
            "sun_exposure": sun_exposure,
            "wind_tolerance": wind_tolerance,
            "flowering_season": flowering_season,
            "acquired": acquired,
        }
        try:
            handle = session.open(filters, {"field": sort, "direction": direction})
        except ValidationError as exc:
            raise _http_error(exc) from exc

        try:
            await handle.wait()
            while len(handle.pages) < pages and handle.has_more and not handle.is_error:
                loaded = len(handle.pages)
                await session.fetch_next(handle)
                if len(handle.pages) <= loaded:
                    break
            payload = handle.snapshot()
            if len(handle.pages) > pages:
                # Earlier requests may have cached more pages for this query.
                kept = handle.pages[:pages]
                payload["items"] = [item.to_payload() for page in kept for item in page.items]
                payload["hasMore"] = True
            return payload
        finally:
            handle.close()

    @fastapi_app.get("/plants/{item_id}")
    async def get_plant(item_id: int) -> dict[str, Any]:
        session = get_catalog_session(fastapi_app)
        try:
            handle = session.get_item(item_id)
        except ValidationError as exc:
            raise _http_error(exc) from exc
        try:
            await handle.wait()
            if handle.not_found:
                raise HTTPException(status_code=404, detail=f"Plant {item_id} not found")
            return handle.snapshot()
        finally:
            handle.close()

    @fastapi_app.put("/plants/{item_id}/media")
    async def replace_media(item_id: int, body: MediaUpdate) -> dict[str, Any]:
        session = get_catalog_session(fastapi_app)
        try:
            updated = await session.set_media(item_id, body.media_ref)
        except CatalogError as exc:
            raise _http_error(exc) from exc
        return {"item": updated.to_payload()}

    @fastapi_app.post("/plants/{item_id}/media/upload")
    async def upload_media(
        item_id: int, request: Request, filename: str | None = None
    ) -> dict[str, Any]:
        session = get_catalog_session(fastapi_app)
        data = await request.body()
        try:
            updated = await session.upload_and_set_media(
                item_id,
                data,
                filename=filename,
                content_type=request.headers.get("content-type"),
            )
        except CatalogError as exc:
            raise _http_error(exc) from exc
        return {"item": updated.to_payload()}

    @fastapi_app.post("/plants/{item_id}/acquired")
    async def mark_acquired(item_id: int) -> dict[str, Any]:
        session = get_catalog_session(fastapi_app)
        try:
            updated = await session.mark_acquired(item_id)
        except CatalogError as exc:
            raise _http_error(exc) from exc
        return {"item": updated.to_payload()}


app = create_app()
