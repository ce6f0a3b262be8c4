import os
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/app.db")).resolve()
        self.stripe_secret_key = os.getenv("STRIPE_SECRET_KEY")
        self.stripe_price_ids: Dict[str, Optional[str]] = {
            "PACKAGE_5": os.getenv("STRIPE_PRICE_ID_PACKAGE_5"),
            "PACKAGE_50": os.getenv("STRIPE_PRICE_ID_PACKAGE_50"),
        }
        self.admin_api_token = os.getenv("ADMIN_API_TOKEN")
        self.list_users_page_size = self._get_int("LIST_USERS_PAGE_SIZE", default=100)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
