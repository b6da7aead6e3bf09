"""Contrato del resolvedor de saldo.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el orquestador se pruebe con resolvedores falsos, sin red.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import BalanceData


@runtime_checkable
class BalanceResolver(Protocol):
    """Contrato mínimo para resolver saldo + modelos de un sitio.

    Reglas de diseño:
    - `resolve` es asíncrono porque hace I/O (HTTP).
    - Los fallos se señalan con `core.domain.errors.ResolutionError`.
    """

    async def resolve(self, base_url: str, api_key: str) -> BalanceData:
        """Resuelve el saldo y los modelos disponibles de `base_url`."""

        ...
