"""Configuration settings for the saaskit backend.

Wraps environment variables and provides defaults.
"""

import re
from typing import Optional

from pydantic import Field, PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        ENVIRONMENT (str): The deployment environment (local, dev, prd).
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[str]): The SQLAlchemy async database URI.
        DB_POOL_SIZE (int): Connection pool size of the async engine.
        CREATE_TABLES_ON_STARTUP (bool): Whether to create missing tables at startup.
        AUTH_ENABLED (bool): Whether Auth0 authentication is enforced.
        AUTH0_DOMAIN (Optional[str]): The Auth0 tenant domain.
        AUTH0_AUDIENCE (Optional[str]): The Auth0 API audience.
        FIRST_SUPERUSER (str): Identity used when authentication is disabled.
        STRIPE_SECRET_KEY (Optional[str]): The Stripe secret API key.
        STRIPE_WEBHOOK_SECRET (Optional[str]): The Stripe webhook signing secret.
        STRIPE_ENABLED (bool): Whether billing is enabled. Defaults to whether a key is set.
        STRIPE_WEBHOOK_TOLERANCE (int): Max age in seconds of a signed webhook timestamp.
        STRIPE_WEBHOOK_IGNORE_STALE_EVENTS (bool): Skip events older than the stored state.
        STRIPE_WEBHOOK_RETRY_ON_STORE_FAILURE (bool): Answer 500 on store failures so that
            Stripe redelivers the event.
        STRIPE_STARTER_PRICE_ID (Optional[str]): Price ID of the starter tier.
        STRIPE_PRO_PRICE_ID (Optional[str]): Price ID of the pro tier.
        STRIPE_ENTERPRISE_PRICE_ID (Optional[str]): Price ID of the enterprise tier.
        SITE_URL (str): Public base URL of the web app, used for redirects.
        ADDITIONAL_CORS_ORIGINS (Optional[str]): Additional CORS origins, comma or semicolon separated.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "saaskit"
    ENVIRONMENT: str = "local"
    LOCAL_DEVELOPMENT: bool = False

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "saaskit"
    POSTGRES_USER: str = "saaskit"
    POSTGRES_PASSWORD: str = "saaskit"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)
    DB_POOL_SIZE: int = 10
    CREATE_TABLES_ON_STARTUP: bool = False

    AUTH_ENABLED: bool = False
    AUTH0_DOMAIN: Optional[str] = None
    AUTH0_AUDIENCE: Optional[str] = None
    FIRST_SUPERUSER: str = "admin@example.com"

    # Stripe configuration
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_ENABLED: Optional[bool] = Field(default=None, validate_default=True)
    STRIPE_WEBHOOK_TOLERANCE: int = 300
    STRIPE_WEBHOOK_IGNORE_STALE_EVENTS: bool = True
    STRIPE_WEBHOOK_RETRY_ON_STORE_FAILURE: bool = False

    STRIPE_STARTER_PRICE_ID: Optional[str] = None
    STRIPE_PRO_PRICE_ID: Optional[str] = None
    STRIPE_ENTERPRISE_PRICE_ID: Optional[str] = None

    SITE_URL: str = "http://localhost:3000"
    ADDITIONAL_CORS_ORIGINS: Optional[str] = None  # Separated by commas or semicolons

    @field_validator("AUTH0_DOMAIN", "AUTH0_AUDIENCE", mode="before")
    def validate_auth0_settings(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Validate Auth0 settings when AUTH_ENABLED is True.

        Args:
        ----
            v (str): The value of the Auth0 setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The validated Auth0 setting.

        Raises:
        ------
            ValueError: If AUTH_ENABLED is True and the Auth0 setting is empty.
        """
        auth_enabled = info.data.get("AUTH_ENABLED", False)
        if auth_enabled and not v:
            raise ValueError(f"{info.field_name} must be set when AUTH_ENABLED is True")
        return v

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=info.data.get("POSTGRES_USER"),
                password=info.data.get("POSTGRES_PASSWORD"),
                host=info.data.get("POSTGRES_HOST", "localhost"),
                port=info.data.get("POSTGRES_PORT"),
                path=f"{info.data.get('POSTGRES_DB') or ''}",
            )
        )

    @field_validator("STRIPE_ENABLED", mode="before")
    def default_stripe_enabled(cls, v: Optional[bool], info: ValidationInfo) -> bool:
        """Enable billing by default whenever a Stripe secret key is configured."""
        if v is None or v == "":
            return bool(info.data.get("STRIPE_SECRET_KEY"))
        return v

    @property
    def app_url(self) -> str:
        """The web app URL, without trailing slash.

        Returns:
            str: The app URL.
        """
        return self.SITE_URL.rstrip("/")

    @property
    def cors_origins(self) -> list[str]:
        """The additional CORS origins as a list.

        Returns:
            list[str]: The origins, split on commas or semicolons.
        """
        if not self.ADDITIONAL_CORS_ORIGINS:
            return []
        return [
            origin.strip()
            for origin in re.split(r"[,;]", self.ADDITIONAL_CORS_ORIGINS)
            if origin.strip()
        ]


settings = Settings()
