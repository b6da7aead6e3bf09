"""Interfaces/abstracciones del Core.

Por qué:
- Define contratos (Protocol) que implementan adaptadores concretos
  (cliente HTTP de billing, almacén JSON).
- Permite invertir dependencias: el Core depende de abstracciones.
"""

from core.interfaces.resolver import BalanceResolver
from core.interfaces.storage import SiteStore

__all__ = ["BalanceResolver", "SiteStore"]
