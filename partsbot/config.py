"""
Runtime configuration.
Reads environment variables (and a local .env file) into a Settings model.
"""

import logging
import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("", "0", "false", "no", "off")


def env_flag(name: str, default: bool = False) -> bool:
    """
    Read a boolean environment variable

    Raises:
        ValueError: If the value is not a recognised true or false spelling
    """
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a true or false value, got {value!r}")


class Settings(BaseModel):
    """Configuration for the assistant and its storefront collaborators"""

    # Content API
    api_base_url: str = Field(default="http://localhost:8000/api")
    api_timeout: float = Field(default=10.0, gt=0)
    api_retry_attempts: int = Field(default=3, ge=1)
    cache_ttl_seconds: int = Field(default=300, ge=0)

    # Local data
    products_path: str = Field(default="data/products.json")
    sessions_db_path: str = Field(default="chat_sessions.db")
    faq_store_path: str = Field(default="faq_store")

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    chat_model: str = Field(default="gpt-4o-mini")
    embedding_model: str = Field(default="text-embedding-3-small")

    # SMTP
    email_host: Optional[str] = None
    email_port: int = Field(default=587, gt=0)
    email_secure: bool = False
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    admin_email: str = Field(default="sdautoaustralia@gmail.com")

    # Business contact details shown by the assistant
    business_name: str = Field(default="SD Auto Part")
    support_phone: str = Field(default="+61 460 786 533")
    support_email: str = Field(default="sdautoaustralia@gmail.com")
    business_hours: str = Field(default="Monday - Friday, 8:00 AM - 6:00 PM")
    business_address: str = Field(default="87 Kookaburra Avenue, Werribee, Victoria 3030, Australia")

    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls) -> 'Settings':
        """
        Build settings from environment variables

        Returns:
            Settings instance

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        defaults = cls()
        return cls(
            api_base_url=os.getenv("API_BASE_URL", defaults.api_base_url),
            api_timeout=float(os.getenv("API_TIMEOUT", str(defaults.api_timeout))),
            api_retry_attempts=int(os.getenv("API_RETRY_ATTEMPTS", str(defaults.api_retry_attempts))),
            cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", str(defaults.cache_ttl_seconds))),
            products_path=os.getenv("PRODUCTS_PATH", defaults.products_path),
            sessions_db_path=os.getenv("SESSIONS_DB_PATH", defaults.sessions_db_path),
            faq_store_path=os.getenv("FAQ_STORE_PATH", defaults.faq_store_path),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            chat_model=os.getenv("CHAT_MODEL", defaults.chat_model),
            embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
            email_host=os.getenv("EMAIL_HOST"),
            email_port=int(os.getenv("EMAIL_PORT", str(defaults.email_port))),
            email_secure=env_flag("EMAIL_SECURE"),
            email_user=os.getenv("EMAIL_USER"),
            email_pass=os.getenv("EMAIL_PASS"),
            admin_email=os.getenv("ADMIN_EMAIL", defaults.admin_email),
            business_name=os.getenv("BUSINESS_NAME", defaults.business_name),
            support_phone=os.getenv("SUPPORT_PHONE", defaults.support_phone),
            support_email=os.getenv("SUPPORT_EMAIL", defaults.support_email),
            business_hours=os.getenv("BUSINESS_HOURS", defaults.business_hours),
            business_address=os.getenv("BUSINESS_ADDRESS", defaults.business_address),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )

    @property
    def image_base_url(self) -> str:
        """API base URL without its /api suffix, used for image paths"""
        url = self.api_base_url.rstrip("/")
        if url.endswith("/api"):
            url = url[:-len("/api")]
        return url

    def image_url(self, image_path: str) -> str:
        """Absolute URL for an image path returned by the API"""
        if image_path.startswith(("http://", "https://")):
            return image_path
        path = image_path if image_path.startswith("/") else f"/{image_path}"
        return f"{self.image_base_url}{path}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings loaded once from the environment"""
    return Settings.from_env()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging at the configured level"""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )
