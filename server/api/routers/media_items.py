from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from backend.genre_catalog import GenreCatalog
from backend.search_service import SearchService
from server.api.deps import get_genre_catalog, get_search_service
from server.api.services import metrics
from server.api.services.media_items import build_search_response, validate_search_params

router = APIRouter(prefix="/api/v1")


@router.get("/media_items")
def media_items(
    request: Request,
    media_type: str | None = Query(None, description="movie | tv"),
    start_date: str | None = Query(None, description="YYYY-MM-DD"),
    end_date: str | None = Query(None, description="YYYY-MM-DD"),
    genre_ids: str | None = Query(None, description="Ids TMDb separados por coma (p.ej. 28,35)"),
    min_rating: str | None = Query(None),
    max_rating: str | None = Query(None),
    sort_by: str | None = Query(None, description="p.ej. popularity.desc"),
    page: str | None = Query(None, description="1..500"),
    service: SearchService = Depends(get_search_service),
    catalog: GenreCatalog = Depends(get_genre_catalog),
) -> Any:
    raw = {
        "media_type": media_type,
        "start_date": start_date,
        "end_date": end_date,
        "genre_ids": genre_ids,
        "min_rating": min_rating,
        "max_rating": max_rating,
        "sort_by": sort_by,
        "page": page,
    }
    raw = {k: v for k, v in raw.items() if v is not None}

    # errores de validación/upstream -> handlers de server/api/middleware/errors.py
    validate_search_params(raw)
    metrics.inc("search_requests_total", 1)
    outcome = service.search(raw)

    request.state.search_query_key = outcome.query_key
    request.state.search_cached = outcome.cached
    if outcome.cached:
        metrics.inc("search_cache_hit_total", 1)
    else:
        metrics.inc("search_cache_miss_total", 1)
        if not outcome.items:
            metrics.inc("search_upstream_empty_total", 1)

    return build_search_response(outcome, catalog)
