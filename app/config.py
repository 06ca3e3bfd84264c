from __future__ import annotations

import secrets

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Mentor Portal"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5

    # Google Sheets
    google_credentials_base64: str | None = None
    google_sheets_report_id: str | None = None
    sheets_read_range: str = "A1:BV"
    sheet_mapping_tab: str = "mapping"
    sheet_um_tab: str = "UM"
    sheet_bangkit_tab: str = "V8"
    sheet_maju_tab: str = "LaporanMajuUM"

    # Access
    secret_key: str = ""  # Will be generated if empty
    session_ttl_seconds: int = 3600
    admin_emails: str = ""
    admin_roles: str = "system_admin,program_coordinator,report_admin"

    # Cache
    premises_cache_ttl_seconds: int = 300

    # Round resolution
    portal_timezone: str = "Asia/Kuala_Lumpur"

    # Security
    cors_origins: list[str] = []  # Empty by default for security
    allowed_hosts: list[str] = ["localhost", "127.0.0.1"]

    # Sentry
    sentry_dsn: str | None = None

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "mentor_portal"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Generate a random secret key if not provided
        if not self.secret_key:
            self.secret_key = secrets.token_urlsafe(32)

    @property
    def admin_email_set(self) -> set[str]:
        """Lower-cased admin allow-list parsed from ADMIN_EMAILS."""
        return {email.strip().lower() for email in self.admin_emails.split(",") if email.strip()}

    @property
    def admin_role_set(self) -> set[str]:
        return {role.strip() for role in self.admin_roles.split(",") if role.strip()}

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
