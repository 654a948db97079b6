"""Configuration settings for the Investment Portfolio gateway."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # External services
    finclub_base_url: str = "https://finclub.mu:8080"
    finclub_mail_address: str = ""
    finclub_password: str = ""

    # Service identification
    service_name: str = "investment-portfolio"

    # Local response cache
    cache_path: str = "cache"
    cache_ttl_seconds: int = 3600

    # The upstream imposes no timeout of its own
    upstream_timeout_seconds: float = 15.0

    # IP addresses or CIDR networks allowed to call the API; empty allows all
    allowed_client_hosts: list[str] = []

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
