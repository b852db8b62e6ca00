"""
backend/errors.py

Taxonomía de errores del core de búsqueda.

- ValidationError (y subclases): error de cliente, no reintentable, sin efectos
  laterales (se lanza antes de tocar caché o TMDb).
- UpstreamError: TMDb respondió con status no-2xx o falló el transporte.
  Fatal para la request actual; no se reintenta internamente.

Payload de caché corrupto y carreras de inserción NO tienen excepción pública:
se recuperan localmente en backend/result_cache.py.
"""

from __future__ import annotations

from collections.abc import Iterable


class MediaDiscoverError(Exception):
    """Base de todos los errores del proyecto."""


class ValidationError(MediaDiscoverError, ValueError):
    """Parámetros de búsqueda inválidos (HTTP 422)."""


class InvalidMediaKind(ValidationError):
    def __init__(self, value: object = None) -> None:
        self.value = value
        if value is None or (isinstance(value, str) and not value.strip()):
            msg = "media_type is required"
        else:
            msg = "media_type must be movie or tv"
        super().__init__(msg)


class InvalidSortToken(ValidationError):
    def __init__(self, token: str, media_kind: str, allowed: Iterable[str]) -> None:
        self.token = token
        self.media_kind = media_kind
        self.allowed: tuple[str, ...] = tuple(sorted(allowed))
        super().__init__(
            f"Invalid sort_by value '{token}' for media_type '{media_kind}'. "
            f"Valid options: {', '.join(self.allowed)}"
        )


class InvalidDateFormat(ValidationError):
    def __init__(self, value: object = None) -> None:
        self.value = value
        super().__init__("Invalid date format. Use YYYY-MM-DD")


class InvalidDateRange(ValidationError):
    def __init__(self, start_date: str, end_date: str) -> None:
        self.start_date = start_date
        self.end_date = end_date
        super().__init__("start_date must be less than or equal to end_date")


class InvalidPage(ValidationError):
    def __init__(self, value: object = None) -> None:
        self.value = value
        super().__init__("Invalid page: Pages must be between 1 and 500")


class UpstreamError(MediaDiscoverError):
    """TMDb devolvió un status no-2xx (status_code) o falló la conexión (None)."""

    def __init__(self, status_code: int | None, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            msg = f"TMDb API error: {detail or 'request failed'}"
        else:
            msg = f"TMDb API error: {status_code}"
        super().__init__(msg)
