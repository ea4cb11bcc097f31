from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Onboarding Bridge"
    app_env: str = "development"
    api_port: int = 5000
    database_url: str = "sqlite+pysqlite:///./onboarding_bridge.db"
    database_auto_create: bool = False
    frontend_url: str = "http://localhost:5173"
    crm_api_base_url: str = "https://services.leadconnectorhq.com/api"
    crm_api_key: str = ""
    crm_location_id: str = ""
    crm_timeout_seconds: float = 10.0
    mock_crm: bool = False
    provisioning_base_url: str = "http://localhost:3000"
    provisioning_api_key: str = ""
    provisioning_timeout_seconds: float = 10.0
    mock_provisioning: bool = False
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_enabled: bool = False
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = ""
    otel_console_exporter: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
