import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime settings read from the environment (and an optional .env)."""

    def __init__(self):
        self.database_url = os.getenv(
            "COOKBOOK_DATABASE_URL", f"sqlite:///{(BASE_DIR / 'cookbook.db').as_posix()}"
        )
        self.log_level = os.getenv("COOKBOOK_LOG_LEVEL", "INFO")
        self.site_url = os.getenv("COOKBOOK_SITE_URL")
        self.oauth_token_url = os.getenv("COOKBOOK_OAUTH_TOKEN_URL")
        self.oauth_client_id = os.getenv("COOKBOOK_OAUTH_CLIENT_ID", "")
        self.oauth_client_secret = os.getenv("COOKBOOK_OAUTH_CLIENT_SECRET", "")
        self.session_cookie = os.getenv("COOKBOOK_SESSION_COOKIE", "cookbook_session")
        self.admin_api_requires_session = _flag("COOKBOOK_ADMIN_API_REQUIRES_SESSION")
        self.host = os.getenv("COOKBOOK_HOST", "127.0.0.1")
        self.port = int(os.getenv("COOKBOOK_PORT", "8000"))

    def public_base_url(self, origin: str) -> str:
        # Hosted deployments may only know their bare hostname.
        if not self.site_url:
            return origin
        if self.site_url.startswith("http"):
            return self.site_url
        return f"https://{self.site_url}"


settings = Settings()
