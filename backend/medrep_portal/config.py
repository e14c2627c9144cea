from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./medrep.db", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")

    # Auth
    jwt_secret_key: str = Field(default="change-me-medrep-portal-secret", env="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", env="JWT_ALGORITHM")
    token_expire_seconds: int = Field(default=86400, env="TOKEN_EXPIRE_SECONDS")  # 24 hours
    bcrypt_rounds: int = Field(default=12, env="BCRYPT_ROUNDS")

    # Runtime
    environment: str = Field(default="development", env="ENVIRONMENT")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    cors_origins: list[str] = Field(default=["*"], env="CORS_ORIGINS")

    # Demo accounts created at startup when missing
    seed_demo_data: bool = Field(default=True, env="SEED_DEMO_DATA")
    demo_password: str = Field(default="password123", env="DEMO_PASSWORD")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def debug(self) -> bool:
        return not self.is_production


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
