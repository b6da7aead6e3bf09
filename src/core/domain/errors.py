"""Errores del dominio.

Por qué una jerarquía propia:
- El orquestador solo necesita distinguir "falló esta resolución" (se reporta
  y se sigue) de "falló el almacenamiento" (aborta la operación).
- Las causas concretas (red, timeout, JSON inválido, rechazo remoto) quedan
  como subclases para que la CLI y los tests puedan discriminarlas.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base class for failures of one balance resolution."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NetworkError(ResolutionError):
    """Raised on connection, DNS or socket failures (and unusable URLs)."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Request failed: {detail}")
        self.detail = detail


class ResolutionTimeoutError(ResolutionError):
    """Raised when the billing request exceeds the configured timeout."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Request timed out ({timeout_seconds:g}s)")
        self.timeout_seconds = timeout_seconds


class MalformedResponseError(ResolutionError):
    """Raised when the billing response cannot be parsed."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse API response: {detail}")
        self.detail = detail


class RemoteRejectedError(ResolutionError):
    """Raised when the billing response lacks `hard_limit_usd`."""


class StorageError(Exception):
    """Raised when the site store cannot be read or written."""


class SiteNotFoundError(LookupError):
    """Raised when the requested site id is not in the store."""

    def __init__(self, site_id: str) -> None:
        super().__init__(f"Site not found: {site_id}")
        self.site_id = site_id
