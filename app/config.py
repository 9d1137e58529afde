from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = "dev"
    log_level: str = "INFO"

    jwt_secret: str = "change-me-before-deploying-this-service"
    jwt_algorithm: str = "HS256"
    jwt_expires_minutes: int = 120
    admin_username: str = "admin"
    admin_password: str = "admin123"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3
    openai_max_tokens: int = 500
    openai_timeout_seconds: float = 15.0
    openai_max_retries: int = 0
    ai_enhancement_enabled: bool = True

    database_url: str = "sqlite:///./risk_scores.db"
    rate_limit: str = "30/minute"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"


settings = Settings()
