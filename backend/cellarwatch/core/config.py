from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "CellarWatch Fermentation API"
    api_prefix: str = "/api/v1"
    database_url: str = "sqlite:///./cellarwatch.db"
    sqlite_busy_timeout_seconds: float = 15.0
    auto_create_tables: bool = False

    jwt_secret_key: str = "change-me-in-env"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Sensor gateways send this in X-API-Key; unset leaves /iot/readings open.
    iot_api_key: str | None = None

    vineyard_service_url: str | None = None
    harvest_service_url: str | None = None
    dashboard_timeout_seconds: float = 5.0

    log_level: str = "info"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
