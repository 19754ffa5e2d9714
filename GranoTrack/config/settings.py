# config/settings.py
"""
Configuración centralizada de la aplicación usando Pydantic Settings.
Las variables se cargan desde el archivo .env
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # Base de datos
    DATABASE_URL: str = "sqlite:///./granotrack.db"

    # JWT (solo validación; los tokens se emiten en el portal)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["http://localhost:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Fumigación
    SERVICIO_GASIFICACION_ID: int = 136257  # "Gas. y Encarpado"
    DIAS_MAX_SIN_GASIFICACION: int = 45
    UMBRAL_PERDIDA_SIN_GASIFICACION: float = 5000.0  # Q.
    UMBRAL_ACIDO_URICO_SIN_GASIFICACION: float = 5.0  # mg/100g

    # Cálculo de daños
    # Si todas las muestras de un silo reportan 0 t, usar la cantidad del lote
    USAR_CANTIDAD_LOTE_SIN_TONELAJE: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
