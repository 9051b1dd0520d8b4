import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from notes_api.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Development convenience only; refused in the production posture.
DEV_SECRET_KEY = "dev-secret-change-me"

PRODUCTION_ENVIRONMENTS = ("production", "prod")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """
    Runtime configuration for the notes API.

    Build it from the environment with `Settings.from_env()`, or construct it
    directly in tests.
    """
    database_url: str = "sqlite:///./notes.db"
    secret_key: Optional[str] = None
    environment: str = "dev"
    access_token_expire_minutes: int = 7 * 24 * 60
    bcrypt_rounds: int = 12
    frontend_origin: str = "http://localhost:3000"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 5000

    # PUBLIC_INTERFACE
    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from environment variables (and a `.env` file, if present)."""
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            secret_key=os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET") or None,
            environment=os.getenv("ENV", cls.environment),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(cls.access_token_expire_minutes))
            ),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", str(cls.bcrypt_rounds))),
            frontend_origin=os.getenv("FRONTEND_ORIGIN", cls.frontend_origin),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
        )

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in PRODUCTION_ENVIRONMENTS

    # PUBLIC_INTERFACE
    def signing_secret(self) -> str:
        """
        Return the secret used to sign tokens.

        Raises:
            ConfigurationError in the production posture when no secret is set,
            or when the development secret is configured explicitly.
        """
        if self.is_production:
            if not self.secret_key:
                raise ConfigurationError("SECRET_KEY must be set when ENV is production")
            if self.secret_key == DEV_SECRET_KEY:
                raise ConfigurationError("The development SECRET_KEY cannot be used in production")
            return self.secret_key
        if not self.secret_key:
            logger.warning("SECRET_KEY is not set; using the development secret. Do not deploy this.")
            return DEV_SECRET_KEY
        return self.secret_key


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
