"""Contrato del almacén de sitios.

El Core no sabe si los sitios viven en un JSON, una base de datos o memoria:
solo carga la colección completa y la guarda completa.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import EndpointRecord


@runtime_checkable
class SiteStore(Protocol):
    """Carga/guarda la colección completa de sitios.

    Ambos métodos levantan `core.domain.errors.StorageError` si el medio no se
    puede leer o escribir.
    """

    def load(self) -> list[EndpointRecord]:
        ...

    def save(self, records: list[EndpointRecord]) -> None:
        ...
