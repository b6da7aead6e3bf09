"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP/almacenamiento) lean config de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "freeapi-tracker"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "freeapi-tracker"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "freeapi-tracker"
    return Path.home() / ".config" / "freeapi-tracker"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="FREEAPI_TRACKER_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout por request contra los endpoints de billing/models (segundos).",
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko)",
        min_length=1,
        description="User-Agent tipo navegador; algunos mirrors rechazan clientes desconocidos.",
    )
    verify_tls: bool = Field(
        default=False,
        description=(
            "Validar certificados TLS. Desactivado por defecto: muchos sitios gratuitos "
            "usan certificados autofirmados."
        ),
    )

    data_file: Path | None = Field(
        default=None,
        description="Ruta al JSON de sitios. Por defecto `<config de usuario>/data.json`.",
    )
    low_balance_threshold: float = Field(
        default=10.0,
        ge=0,
        description="Saldo (USD) por debajo del cual un sitio cuenta como 'saldo bajo'.",
    )

    log_level: str = Field(
        default="INFO",
        min_length=1,
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )

    def resolved_data_file(self) -> Path:
        """Ruta efectiva del almacén JSON."""

        if self.data_file is not None:
            return self.data_file
        return get_user_config_dir() / "data.json"
