"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with TODOGATE_ prefix.
No YAML files, no file-based config — just env vars (12-factor app style).

Learn: Nothing here is allowed to raise when a value is missing. The
database URL, auth secret and base URL are only *needed* by the store
and the session verifier; the dependency gate checks them lazily and
degrades those features to "unavailable" instead of refusing to boot.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via TODOGATE_* env vars."""

    # Database
    database_url: Optional[str] = None

    # Credential subsystem
    auth_secret: Optional[str] = None
    app_url: Optional[str] = None
    jwt_algorithm: str = "HS256"
    session_cookie_name: str = "todogate.session_token"
    session_expire_days: int = 7
    bcrypt_rounds: int = 12

    # Authorization
    admin_role: str = "admin"

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    api_prefix: str = "/api"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3001",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "TODOGATE_"}

    def missing_auth_config(self) -> list[str]:
        """Names of the mandatory credential-subsystem settings that are unset."""
        missing = []
        if not self.auth_secret:
            missing.append("TODOGATE_AUTH_SECRET")
        if not self.app_url:
            missing.append("TODOGATE_APP_URL")
        return missing

    def missing_config(self) -> list[str]:
        """Every mandatory setting that is unset (store + credentials)."""
        missing = [] if self.database_url else ["TODOGATE_DATABASE_URL"]
        return missing + self.missing_auth_config()


# Singleton — import this everywhere
settings = Settings()
