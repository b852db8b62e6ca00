from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from backend.errors import UpstreamError
from backend.genre_catalog import GenreCatalog
from backend.search_params import normalize_media_kind
from server.api.deps import get_genre_catalog
from server.api.services import metrics

router = APIRouter(prefix="/api/v1/genres")


@router.get("")
def list_genres(
    media_type: str | None = Query(None, description="movie | tv"),
    catalog: GenreCatalog = Depends(get_genre_catalog),
) -> Any:
    # InvalidMediaKind -> 422 vía handler de validación
    kind = normalize_media_kind(media_type)
    return [g.as_dict() for g in catalog.list_genres(kind)]


@router.post("/sync")
def sync_genres(
    media_type: str | None = Query(None, description="movie | tv"),
    body: dict[str, Any] | None = Body(None),
    catalog: GenreCatalog = Depends(get_genre_catalog),
) -> Any:
    """
    Sync bajo demanda desde TMDb. Acepta media_type en query, en el body
    ({"media_type": ...}) o anidado ({"genre": {"media_type": ...}}).
    """
    value: object = media_type
    if value is None and isinstance(body, dict):
        nested = body.get("genre")
        value = nested.get("media_type") if isinstance(nested, dict) else body.get("media_type")

    kind = normalize_media_kind(value)

    try:
        catalog.sync(kind)
    except UpstreamError as exc:
        metrics.inc("genre_sync_errors_total", 1)
        return JSONResponse(status_code=422, content={"error": str(exc)})

    metrics.inc("genre_sync_total", 1)
    return {"success": True, "message": "Genres synced successfully"}
