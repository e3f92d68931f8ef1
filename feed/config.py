"""Process-wide settings read from the environment (Key Vault or .env) using pydantic-settings."""

from __future__ import annotations

from urllib.parse import quote_plus

from pydantic import Field, PositiveInt, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from feed.exceptions import ConfigurationError

DEFAULT_QUEUE_NAME = "certs-queue"
DEFAULT_SCHEMA = "dbo"
DEFAULT_TIMEOUT_SECONDS = 30


def to_sqlalchemy_url(connection_string: str) -> str:
    """
    Accept either a SQLAlchemy URL or a raw ODBC connection string.
    ODBC strings (``Server=...;Database=...``) are passed through pyodbc's odbc_connect.
    """
    value = connection_string.strip()
    if "://" in value:
        return value
    return "mssql+pyodbc:///?odbc_connect=" + quote_plus(value)


class FeedSettings(BaseSettings):
    """Connection strings, default credential, queue and timeouts. Names match the Functions app settings."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_ignore_empty=True,
        str_strip_whitespace=True,
        frozen=True,
        extra="ignore",
    )

    sql_connection_string: str = Field(alias="SqlConnectionString", min_length=1)
    service_bus_connection: str = Field(alias="ServiceBusConnection", min_length=1)
    default_password: str = Field(alias="DefaultUserPassword", min_length=1)
    queue_name: str = Field(DEFAULT_QUEUE_NAME, alias="EmailQueueName", min_length=1)
    db_schema: str = Field(DEFAULT_SCHEMA, alias="SCHEMA")  # "" means the connection's default schema
    sql_timeout: PositiveInt = Field(DEFAULT_TIMEOUT_SECONDS, alias="SqlTimeoutSeconds")
    send_timeout: PositiveInt = Field(DEFAULT_TIMEOUT_SECONDS, alias="ServiceBusTimeoutSeconds")

    @property
    def database_url(self) -> str:
        return to_sqlalchemy_url(self.sql_connection_string)

    @classmethod
    def from_env(cls) -> "FeedSettings":
        """Read all settings once. Missing or malformed values are fatal for the process."""
        try:
            return cls()
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ConfigurationError(f"Invalid configuration (Key Vault or local settings): {problems}") from exc
