from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NUKOKEN_", env_file=".env")

    env: Env = Env.local
    html_dir: Path = Path("assets/html")
    static_dir: Path = Path("assets/static")
    upload_dir: Path = Path("assets/uploads")
    upload_url_prefix: str = "/uploads"
    db_url: str = "sqlite+aiosqlite:///nukoken.db"

    secret_key: str = "change-me"
    admin_password: str = ""

    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_types: tuple[str, ...] = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
    )

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    contact_recipient: str = ""

    gtm_id: str = ""
    cloudflare_token: str = ""

    popular_limit: int = 6
    latest_limit: int = 6
    featured_limit: int = 3

    @property
    def debug(self) -> bool:
        return self.env == Env.local
