"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- El mismo modelo sirve para leer/escribir el `data.json` (claves camelCase)
  y para trabajar en Python con nombres snake_case.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_site_id() -> str:
    # Milisegundos desde epoch: mismo formato que los ids ya guardados.
    return str(int(time.time() * 1000))


class SiteStatus(str, Enum):
    """Estado declarado por el usuario para un sitio."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class EndpointRecord(BaseModel):
    """Un sitio de API gratuita registrado por el usuario.

    Por qué `extra="allow"`:
    - El JSON puede contener claves que esta versión no conoce; se conservan
      al reescribir el archivo.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = Field(
        default_factory=_new_site_id,
        min_length=1,
        description="Identificador estable del sitio.",
    )
    name: str = Field(
        default="",
        max_length=256,
        description="Nombre visible del sitio.",
    )
    url: str = Field(
        ...,
        min_length=1,
        description="URL base del API remoto (la barra final es irrelevante).",
    )
    api_key: str = Field(
        default="",
        description="Credencial Bearer presentada al API remoto.",
    )
    balance: float = Field(
        default=0.0,
        description="Último saldo resuelto (USD, 2 decimales).",
    )
    total_limit: float | None = Field(
        default=None,
        description="Valor crudo de `hard_limit_usd` reportado por el API.",
    )
    models: list[str] = Field(
        default_factory=list,
        description="Modelos disponibles según `/v1/models` (orden del API).",
    )
    status: SiteStatus = Field(
        default=SiteStatus.ACTIVE,
        description="Estado declarado por el usuario.",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="Momento de alta del sitio (UTC).",
    )
    last_checked: datetime | None = Field(
        default=None,
        description="Última resolución exitosa (UTC).",
    )

    @field_validator("balance", mode="before")
    @classmethod
    def _null_balance_is_zero(cls, value: object) -> object:
        # Ediciones con saldo vacío quedan guardadas como `"balance": null`.
        return 0.0 if value is None else value


class BalanceData(BaseModel):
    """Resultado normalizado de una resolución exitosa."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    balance: float = Field(..., description="Saldo redondeado a 2 decimales.")
    total_limit: float | None = Field(default=None, description="`hard_limit_usd` sin redondear.")
    models: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def model_count(self) -> int:
        return len(self.models)

    @classmethod
    def from_billing(cls, billing: BillingAccepted, models: list[str]) -> BalanceData:
        return cls(
            balance=round(billing.hard_limit_usd or 0.0, 2),
            total_limit=billing.hard_limit_usd,
            models=list(models),
        )


class BillingAccepted(BaseModel):
    """Respuesta de billing con `hard_limit_usd` presente (aunque sea 0/null)."""

    kind: Literal["accepted"] = "accepted"
    hard_limit_usd: float | None = None


class BillingRejected(BaseModel):
    """Respuesta de billing sin `hard_limit_usd`."""

    kind: Literal["rejected"] = "rejected"
    message: str = Field(..., min_length=1)


ParsedBilling = Union[BillingAccepted, BillingRejected]


class BatchResultEntry(BaseModel):
    """Resultado por sitio de un chequeo masivo (no se persiste)."""

    model_config = ConfigDict(protected_namespaces=())

    id: str
    name: str
    success: bool
    balance: float | None = None
    model_count: int | None = None
    error: str | None = None

    @classmethod
    def succeeded(cls, record: EndpointRecord, data: BalanceData) -> BatchResultEntry:
        return cls(
            id=record.id,
            name=record.name,
            success=True,
            balance=data.balance,
            model_count=data.model_count,
        )

    @classmethod
    def failed(cls, record: EndpointRecord, message: str) -> BatchResultEntry:
        return cls(id=record.id, name=record.name, success=False, error=message)


class SiteStats(BaseModel):
    """Agregados para el resumen del dashboard."""

    total: int = 0
    active: int = 0
    no_balance: int = 0
    low_balance: int = 0
    total_balance: float = 0.0
