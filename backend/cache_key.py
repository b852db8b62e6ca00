# fingerprint estable (sha256) de una búsqueda normalizada
from __future__ import annotations

import hashlib
import json
from typing import Any

from backend.search_params import NormalizedSearchRequest


def canonical_fields(req: NormalizedSearchRequest) -> dict[str, Any]:
    """
    Campos que identifican la consulta lógica.

    genre_ids vacío se serializa como None: "sin filtro" tiene una sola forma.
    """
    return {
        "start_date": req.start_date,
        "end_date": req.end_date,
        "media_type": req.media_kind.value,
        "genre_ids": list(req.genre_ids) or None,
        "min_rating": req.min_rating,
        "max_rating": req.max_rating,
        "sort_by": req.sort_token,
        "page": req.page,
    }


def canonical_json(req: NormalizedSearchRequest) -> str:
    # sort_keys: el orden de inserción de la request original no debe influir
    return json.dumps(canonical_fields(req), sort_keys=True, separators=(",", ":"))


def fingerprint(req: NormalizedSearchRequest) -> str:
    """SHA-256 hex (minúsculas, 64 chars) del JSON canónico."""
    return hashlib.sha256(canonical_json(req).encode("utf-8")).hexdigest()
