"""Configuration management for the notification dispatcher."""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Backend selection: "appwrite" | "sql"
    store_backend: str = "appwrite"

    # Appwrite
    appwrite_endpoint: str = ""
    appwrite_project_id: str = ""
    appwrite_api_key: str = ""
    appwrite_database_id: str = "main"
    http_timeout_seconds: float = 30.0

    # SQL backend
    database_url: str = "sqlite:///./notifications.db"

    # Collections
    application_forms_collection_id: str = "application_forms"
    national_id_collection_id: str = "national_id_applications"
    business_collection_id: str = "business_registrations"
    gun_license_collection_id: str = "gun_licenses"
    pay_stubs_collection_id: str = "pay_stubs"
    employees_collection_id: str = "employees"

    # Notification policy
    notify_throttle_minutes: int = 10
    dry_run: bool = False
    enable_application_notifications: bool = True
    enable_pay_stub_notifications: bool = True
    notification_config_path: str = ""

    # Rendering
    portal_base_url: str = ""
    email_format: str = "html"  # html | text

    # Webhook secret (for signature verification)
    webhook_secret: str = ""

    # App
    log_level: str = "INFO"
    env: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
