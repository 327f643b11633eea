"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


def _default_idp_display_names() -> dict[str, str]:
    return {
        "Mozilla-LDAP": "LDAP",
        "Mozilla-LDAP-Dev": "LDAP",
        "github": "GitHub",
        "google-oauth2": "Google",
        "firefoxaccounts": "Firefox Accounts",
        "email": "passwordless email",
    }


class IAMConfig(BaseModel):
    """Profile synchronisation and authentication policy."""

    refresh_interval_seconds: int = Field(
        default=900, description="Maximum age of cached profile data (15 minutes)"
    )
    force_refresh_on_login: bool = Field(
        default=True, description="Always refresh the profile of a user who signs in"
    )
    audience: str | None = Field(
        default=None,
        description="Trusted ID token audience (defaults to the provider client_id)",
    )
    idp_display_names: dict[str, str] = Field(
        default_factory=_default_idp_display_names,
        description="Map of uid provider segment to a human readable IdP name",
    )
    unknown_idp: str = Field(
        default="Unknown", description="IdP name used when the uid cannot be parsed"
    )
    store_namespace: str = Field(
        default="iam", description="Key prefix used in the durable key-value store"
    )
    logout_delay_cache_ttl: int = Field(
        default=300, description="TTL in seconds of the in-process logout_delay cache"
    )
    locale: str = Field(default="en", description="Locale for user-facing messages")
    messages: dict[str, str] = Field(
        default_factory=dict,
        description="Message template overrides keyed by message key",
    )


class ProfileStoreConfig(BaseModel):
    """Remote profile (person) API configuration."""

    base_url: str = Field(
        default="http://localhost:8080", description="Profile API base URL"
    )
    path_template: str = Field(
        default="/v2/user/user_id/{uid}",
        description="Path of a profile record; {uid} is URL-quoted",
    )
    api_token: str | None = Field(
        default=None, description="Bearer token for the profile API"
    )
    timeout_seconds: float = Field(default=10.0, description="Request timeout")
    secondary_emails_field: str = Field(
        default="secondary_emails",
        description="Name of the remote attribute listing secondary emails",
    )


class RedisConfig(BaseModel):
    """Redis configuration model."""

    enabled: bool = Field(default=False, description="Enable Redis service")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    decode_responses: bool = Field(
        default=True, description="Decode Redis responses to strings"
    )
    socket_timeout: float = Field(default=2.0, description="Socket timeout in seconds")

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class OIDCProviderConfig(BaseModel):
    """OIDC provider configuration model."""

    issuer: str | None = Field(default=None, description="OIDC issuer URL")
    authorization_endpoint: str = Field(description="OIDC authorization endpoint URL")
    jwks_uri: str | None = Field(
        default=None,
        description="JWKS endpoint; when unset the client secret verifies HS256 tokens",
    )
    client_id: str = Field(description="Client ID for the OIDC provider")
    client_secret: str | None = Field(
        default=None, description="Client secret for the OIDC provider"
    )
    redirect_uri: str = Field(description="Redirect URI for this provider")
    scopes: list[str] = Field(
        default_factory=lambda: ["openid", "name", "email"],
        description="OIDC scopes to request during authentication",
    )
    authorize_params: dict[str, str] = Field(
        default_factory=lambda: {"action": "signup"},
        description="Extra parameters sent to the authorization endpoint",
    )
    enabled: bool = Field(default=True, description="Enable OIDC authentication")


class OIDCConfig(BaseModel):
    """OIDC configuration model."""

    providers: dict[str, OIDCProviderConfig] = Field(
        default_factory=dict, description="OIDC provider configurations"
    )
    default_provider: str = Field(
        default="auth0", description="Default OIDC provider to use"
    )


class JWTConfig(BaseModel):
    """JWT validation configuration."""

    allowed_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "HS256"],
        description="JWT algorithms allowed for token validation",
    )
    clock_skew: int = Field(default=0, description="Clock skew tolerance in seconds")


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./iam_bridge.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    auth_state_ttl_seconds: int = Field(
        default=600, description="Lifetime of the state/nonce cookies (10 minutes)"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    iam: IAMConfig = Field(default_factory=IAMConfig, description="IAM policy")
    profile_store: ProfileStoreConfig = Field(
        default_factory=ProfileStoreConfig, description="Profile API configuration"
    )
    oidc: OIDCConfig = Field(
        default_factory=OIDCConfig, description="OIDC configuration"
    )
    jwt: JWTConfig = Field(
        default_factory=JWTConfig, description="JWT validation configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
