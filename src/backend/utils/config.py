"""
Konfiguration und Settings
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Anwendungs-Einstellungen"""

    # Datenbank
    database_url: str = "sqlite+aiosqlite:///./data/petube.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_recycle: int = 3600

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # === Authentication ===
    # Public key of the identity provider, either a JWK JSON document or PEM.
    jwt_public_key: str = ""
    jwt_algorithms: str = "RS256"  # Comma-separated
    jwt_audience: Optional[str] = None

    # CORS
    cors_origins: str = "*"  # Comma-separated list or "*" for development

    # Stream rooms
    publisher_conflict_close_code: int = 4000

    # Device pairing
    pairing_session_ttl_seconds: int = 600  # 10 minutes

    # Partition actors
    actor_idle_timeout_seconds: float = 300.0

    @property
    def jwt_algorithms_list(self) -> List[str]:
        """Returns jwt_algorithms as a list"""
        return [alg.strip() for alg in self.jwt_algorithms.split(",") if alg.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Returns cors_origins as a list"""
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def async_database_url(self) -> str:
        """Database URL with an async driver"""
        return self.database_url.replace("postgresql://", "postgresql+asyncpg://")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Globale Settings Instanz
settings = Settings()


@lru_cache()
def get_settings() -> Settings:
    """Gibt die Settings-Instanz zurück (cached)"""
    return settings
