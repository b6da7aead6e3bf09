"""Almacén JSON de sitios.

Formato (compatible con el `data.json` existente):
    {"sites": [{"id": "...", "name": "...", "apiKey": "...", ...}]}

Por qué JSON:
- Un dashboard personal no necesita base de datos.
- Es legible/editable a mano y fácil de respaldar.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from core.domain.errors import StorageError
from core.domain.models import EndpointRecord
from core.interfaces.storage import SiteStore


class SitesFile(BaseModel):
    sites: list[EndpointRecord] = Field(default_factory=list)


class JsonSiteStore(SiteStore):
    """Implementa `SiteStore` sobre un único archivo JSON UTF-8."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> list[EndpointRecord]:
        # Archivo inexistente = colección vacía (primer arranque).
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else {}
            return SitesFile.model_validate(data).sites
        except (OSError, ValueError, ValidationError) as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc

    def save(self, records: list[EndpointRecord]) -> None:
        payload = SitesFile(sites=list(records)).model_dump(mode="json", by_alias=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc
