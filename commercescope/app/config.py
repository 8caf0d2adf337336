"""FastAPI application settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    api_prefix: str = "/api/v1"
    batch_workers: int = 4
    max_forecast_periods: int = 90
    max_recommendations: int = 100
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "COMMERCESCOPE_"
        extra = "ignore"


settings = Settings()
