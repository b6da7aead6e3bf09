"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y la política TLS de todas las peticiones
  salientes hacia los sitios.
- Facilita testeo: se puede inyectar un `transport` (p.ej. `httpx.MockTransport`).
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con los defaults del proyecto.

    Por qué un builder:
    - Centraliza timeout/User-Agent/verify para que billing y models se
      comporten igual.
    - `verify` sale de `settings.verify_tls` (desactivado por defecto: los
      mirrors gratuitos suelen usar certificados autofirmados).
    - No sigue redirects: el contrato con el API remoto son dos rutas fijas.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=False,
        verify=settings.verify_tls,
        headers=headers,
        transport=transport,
    )


def bearer_headers(api_key: str) -> dict[str, str]:
    """Headers de autenticación para el API estilo OpenAI."""

    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
