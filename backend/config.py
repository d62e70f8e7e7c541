from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Lean Log"
    APP_VERSION: str = "1.0.0"
    DATABASE_URL: str = "sqlite:///data/leanlog.db"
    DATA_DIR: Path = Path("data")
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://localhost:3000",
    ]
    LOG_LEVEL: str = "INFO"
    SECURITY_HEADERS_ENABLED: bool = True
    MCP_PROTOCOL_VERSION: str = "2024-11-05"
    MCP_SERVER_NAME: str = "lean-log"
    API_KEY_PREFIX: str = "llk_"
    DAY_LOG_CREATE_ATTEMPTS: int = 3
    ENTRY_INSERT_ATTEMPTS: int = 5

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_production_like(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() in {"production", "prod", "staging"}

    def validate_security_configuration(self) -> None:
        if not self.is_production_like:
            return

        errors: list[str] = []
        if "*" in self.CORS_ORIGINS:
            errors.append("CORS_ORIGINS must not contain a wildcard origin")
        if not self.SECURITY_HEADERS_ENABLED:
            errors.append("SECURITY_HEADERS_ENABLED must be true")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Insecure production configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
