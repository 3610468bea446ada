from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")


class Settings:
    """Runtime settings shared across the session server."""

    def __init__(self) -> None:
        self.title: str = "CAPS Voice Session API"
        self.version: str = "1.0.0"
        self.frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.cors_origins: List[str] = [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
        self.caps_api_url: str = os.getenv("CAPS_API_URL", "http://localhost:8000")
        self.caps_fraud_api_url: Optional[str] = os.getenv("CAPS_FRAUD_API_URL") or None
        self.http_timeout: float = float(os.getenv("CAPS_HTTP_TIMEOUT", "20"))
        self.daily_limit: float = float(os.getenv("CAPS_DAILY_LIMIT", "2000"))
        self.host: str = os.getenv("CAPS_HOST", "127.0.0.1")
        self.port: int = int(os.getenv("CAPS_PORT", "8080"))


settings = Settings()
