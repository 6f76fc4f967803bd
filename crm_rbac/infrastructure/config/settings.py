from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "CRM RBAC"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False

    # Tenancy
    platform_tenant_id: str = "platform"  # Sentinel tenant owning global roles

    # Redis Cache
    redis_enabled: bool = True  # Enable/disable permission caching
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # Cache TTL (Time-To-Live) in seconds
    cache_ttl_permissions: int = 300  # 5 minutes

    # Audit log queries
    audit_query_limit: int = 100  # Default page size
    audit_query_max_limit: int = 1000  # Hard cap on page size

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required fields and numeric bounds"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")
        if not self.platform_tenant_id:
            raise ValueError("PLATFORM_TENANT_ID must not be empty")
        if self.cache_ttl_permissions <= 0:
            raise ValueError("CACHE_TTL_PERMISSIONS must be positive")
        if self.audit_query_limit <= 0 or self.audit_query_max_limit <= 0:
            raise ValueError("Audit query limits must be positive")
        if self.audit_query_limit > self.audit_query_max_limit:
            raise ValueError("AUDIT_QUERY_LIMIT cannot exceed AUDIT_QUERY_MAX_LIMIT")
        return self

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
