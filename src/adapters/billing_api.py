"""Resolvedor de saldo contra APIs estilo OpenAI.

Flujo (dos pasos encadenados, nunca en paralelo):
1. `GET {base}/v1/dashboard/billing/subscription` -> `hard_limit_usd`.
2. Solo si (1) fue aceptado: `GET {base}/v1/models` -> ids de modelos.

Reglas:
- El éxito lo decide el cuerpo (presencia de `hard_limit_usd`), no el status.
- Un fallo en (2) nunca es error: degrada a lista vacía y se loguea.
- Cada request tiene timeout propio; al vencer se cancela la petición en vuelo.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from adapters.http_client import bearer_headers, build_async_client
from core.config import AppSettings
from core.domain.errors import (
    MalformedResponseError,
    NetworkError,
    RemoteRejectedError,
    ResolutionTimeoutError,
)
from core.domain.models import BalanceData, BillingAccepted, BillingRejected, ParsedBilling
from core.interfaces.resolver import BalanceResolver

logger = logging.getLogger(__name__)

SUBSCRIPTION_PATH = "/v1/dashboard/billing/subscription"
MODELS_PATH = "/v1/models"
DEFAULT_REJECTION_MESSAGE = "Failed to retrieve subscription info"

_BODY_PREVIEW_CHARS = 300


def normalize_base_url(url: str) -> str:
    """Quita exactamente una barra final."""

    return url[:-1] if url.endswith("/") else url


def parse_billing(payload: Any) -> ParsedBilling:
    """Clasifica el cuerpo de billing como aceptado o rechazado.

    Levanta `MalformedResponseError` si `hard_limit_usd` existe pero no es numérico.
    """

    if isinstance(payload, dict) and "hard_limit_usd" in payload:
        try:
            return BillingAccepted(hard_limit_usd=payload["hard_limit_usd"])
        except ValidationError as exc:
            raise MalformedResponseError(f"invalid hard_limit_usd: {payload['hard_limit_usd']!r}") from exc

    message = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            candidate = error.get("message")
            if isinstance(candidate, str) and candidate.strip():
                message = candidate.strip()
    return BillingRejected(message=message or DEFAULT_REJECTION_MESSAGE)


def parse_model_ids(payload: Any) -> list[str]:
    """Extrae `data[].id` respetando el orden; cualquier otra forma -> []."""

    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, list):
        return []
    out: list[str] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        model_id = item.get("id")
        if isinstance(model_id, str):
            out.append(model_id)
    return out


class BillingApiResolver(BalanceResolver):
    """Resuelve saldo + modelos de un sitio.

    Si se pasa `client`, se reutiliza (y no se cierra); si no, se construye
    uno por resolución con `build_async_client`.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client = client

    @property
    def timeout_seconds(self) -> float:
        return self._settings.http_timeout_seconds

    async def resolve(self, base_url: str, api_key: str) -> BalanceData:
        base = normalize_base_url(base_url)
        if self._client is not None:
            return await self._resolve_with(self._client, base, api_key)
        async with build_async_client(self._settings) as client:
            return await self._resolve_with(client, base, api_key)

    async def _resolve_with(self, client: httpx.AsyncClient, base: str, api_key: str) -> BalanceData:
        billing = await self.fetch_subscription(client, base, api_key)
        models = await self.fetch_models(client, base, api_key)
        data = BalanceData.from_billing(billing, models)
        logger.info(
            "Balance resolved for %s: $%.2f (%d models)",
            base,
            data.balance,
            data.model_count,
        )
        return data

    async def _get(self, client: httpx.AsyncClient, url: str, api_key: str) -> httpx.Response:
        # wait_for cancela la corrutina en vuelo; httpx libera la conexión.
        return await asyncio.wait_for(
            client.get(url, headers=bearer_headers(api_key)),
            timeout=self.timeout_seconds,
        )

    async def fetch_subscription(
        self,
        client: httpx.AsyncClient,
        base: str,
        api_key: str,
    ) -> BillingAccepted:
        url = f"{base}{SUBSCRIPTION_PATH}"
        logger.info("Checking subscription: %s", url)

        try:
            response = await self._get(client, url, api_key)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.error("Subscription request timed out: %s", url)
            raise ResolutionTimeoutError(self.timeout_seconds) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Subscription request failed: %s (%s)", url, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc
        except ValueError as exc:
            # Cabeceras no codificables (p.ej. una key pegada con "…") fallan
            # al construir la request, antes de salir a la red.
            logger.error("Subscription request could not be built: %s (%s)", url, exc)
            raise NetworkError(str(exc) or exc.__class__.__name__) from exc

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Subscription response status: %s", response.status_code)
            logger.debug("Subscription response body: %s", response.text[:_BODY_PREVIEW_CHARS])

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("Subscription response is not JSON: %s", url)
            raise MalformedResponseError(str(exc)) from exc

        parsed = parse_billing(payload)
        if isinstance(parsed, BillingRejected):
            logger.error("Subscription rejected by %s: %s", base, parsed.message)
            raise RemoteRejectedError(parsed.message)
        return parsed

    async def fetch_models(self, client: httpx.AsyncClient, base: str, api_key: str) -> list[str]:
        url = f"{base}{MODELS_PATH}"
        logger.info("Fetching models: %s", url)

        try:
            response = await self._get(client, url, api_key)
            payload = response.json()
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Models request timed out, continuing without models: %s", url)
            return []
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning("Models request failed, continuing without models: %s (%s)", url, exc)
            return []

        models = parse_model_ids(payload)
        logger.debug("Found %d models at %s", len(models), url)
        return models
