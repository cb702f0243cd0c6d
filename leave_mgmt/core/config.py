"""
Configuration management for the Leave Management Backend
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional, List
from leave_mgmt.workflow.types import UserRole


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Required settings
    DATABASE_URL: str = Field(..., description="Database URL (PostgreSQL in prod, SQLite locally)")
    JWT_SECRET_KEY: str = Field(..., description="JWT secret key for token signing")

    # Optional settings with defaults
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Version (can be git SHA or semver)
    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    # Leave workflow
    WEEKLY_OFF_DAYS: str = Field(
        default="5,6",
        description="Comma-separated weekdays not counted as leave days (Monday=0 ... Sunday=6)"
    )
    DEFAULT_APPROVAL_ROLES: str = Field(
        default="line_manager,hr",
        description="Approver roles used when no workflow is configured for a leave type/department"
    )
    REQUEST_LOCK_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Max seconds a decision waits for another decision on the same request"
    )

    # Initial admin bootstrap settings
    INITIAL_ADMIN_USERNAME: str = Field(
        default="admin",
        description="Username for initial admin user (used when no admin exists)"
    )
    INITIAL_ADMIN_PASSWORD: str = Field(
        default="Admin@12345",
        description="Password for initial admin user (used when no admin exists)"
    )

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("WEEKLY_OFF_DAYS")
    @classmethod
    def validate_weekly_off_days(cls, v: str) -> str:
        for part in v.split(","):
            part = part.strip()
            if not part:
                continue
            if not part.isdigit() or not 0 <= int(part) <= 6:
                raise ValueError("WEEKLY_OFF_DAYS must be comma-separated integers 0-6")
        return v

    @field_validator("DEFAULT_APPROVAL_ROLES")
    @classmethod
    def validate_default_approval_roles(cls, v: str) -> str:
        approvers = {role.value for role in UserRole} - {UserRole.EMPLOYEE.value}
        roles = [r.strip() for r in v.split(",") if r.strip()]
        if not roles:
            raise ValueError("DEFAULT_APPROVAL_ROLES needs at least one approver role")
        unknown = [r for r in roles if r not in approvers]
        if unknown:
            raise ValueError(
                f"DEFAULT_APPROVAL_ROLES contains roles that cannot approve leave: {', '.join(unknown)}; "
                f"allowed: {', '.join(sorted(approvers))}"
            )
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            # JWT_SECRET_KEY must be at least 32 characters in production
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            # ALLOWED_ORIGINS must not be wildcard in production
            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_weekly_off_days(self) -> frozenset:
        return frozenset(int(p) for p in self.WEEKLY_OFF_DAYS.split(",") if p.strip())

    def get_default_approval_roles(self) -> List[str]:
        return [r.strip() for r in self.DEFAULT_APPROVAL_ROLES.split(",") if r.strip()]


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
