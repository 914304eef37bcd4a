"""Centralized configuration — all env vars in one place."""

import os
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")

        # Server
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "3001"))

        # Upstream catalog + snapshot cache
        self.products_api_url: str = os.getenv("PRODUCTS_API_URL", "https://dummyjson.com/products")
        self.cache_file: Path = Path(os.getenv("CACHE_FILE", str(BACKEND_DIR / "cache.json")))
        self.cache_duration_seconds: float = float(os.getenv("CACHE_DURATION_SECONDS", "600"))
        self.upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10"))

        # Inbound rate limiting (0 disables)
        self.rate_limit_requests: int = int(os.getenv("RATE_LIMIT_REQUESTS", "50"))
        self.rate_limit_window_seconds: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "3600"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return a list of configuration problems (empty when all is well)."""
        problems = []
        if not self.products_api_url.startswith(("http://", "https://")):
            problems.append(f"PRODUCTS_API_URL is not an http(s) URL: {self.products_api_url}")
        if self.cache_duration_seconds <= 0:
            problems.append("CACHE_DURATION_SECONDS must be positive")
        if self.upstream_timeout_seconds <= 0:
            problems.append("UPSTREAM_TIMEOUT_SECONDS must be positive")
        if not self.cache_file.parent.is_dir():
            problems.append(f"CACHE_FILE directory does not exist: {self.cache_file.parent}")
        return problems


settings = Settings()
