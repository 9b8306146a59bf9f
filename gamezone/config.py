from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger(__name__)


def _env(primary: str, *fallbacks: str, default: str = "") -> str:
    """Read env var with fallback aliases."""
    val = os.getenv(primary)
    if val is not None:
        return val
    for fb in fallbacks:
        val = os.getenv(fb)
        if val is not None:
            return val
    return default


def _flag(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in ("true", "1", "yes")


class Settings:
    # --- Server ---
    HOST: str = _env("GAMEZONE_HOST", default="0.0.0.0")
    PORT: int = int(_env("GAMEZONE_PORT", "PORT", default="3000"))

    # --- Sessions ---
    SESSION_SECRET: str = os.getenv("SESSION_SECRET", "dev-secret-change-in-production")
    SESSION_MAX_AGE: int = int(os.getenv("SESSION_MAX_AGE", str(24 * 60 * 60)))
    REMEMBER_MAX_AGE: int = int(os.getenv("REMEMBER_MAX_AGE", str(30 * 24 * 60 * 60)))
    COOKIE_SECURE: bool = _flag("COOKIE_SECURE")
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))

    # --- Storage ---
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "gamezone.db")

    # --- Steam Web API ---
    STEAM_API_KEY: str = os.getenv("STEAM_API_KEY", "")
    STEAM_LANGUAGE: str = os.getenv("STEAM_LANGUAGE", "polish")
    STEAM_RETURN_URL: str = os.getenv("STEAM_RETURN_URL", "")
    STEAM_REALM: str = os.getenv("STEAM_REALM", "")

    # --- gg.deals ---
    GGDEALS_API_KEY: str = os.getenv("GGDEALS_API_KEY", "")
    GGDEALS_REGION: str = os.getenv("GGDEALS_REGION", "pl")
    GGDEALS_DEFAULT_CURRENCY: str = os.getenv("GGDEALS_DEFAULT_CURRENCY", "PLN")

    # --- Upstream HTTP ---
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "10"))

    # --- Cache lifetimes (seconds) ---
    TTL_GAMES: int = int(os.getenv("TTL_GAMES", "300"))
    TTL_PROFILE: int = int(os.getenv("TTL_PROFILE", "300"))
    TTL_FRIENDS: int = int(os.getenv("TTL_FRIENDS", "300"))
    TTL_ACHIEVEMENTS: int = int(os.getenv("TTL_ACHIEVEMENTS", "600"))
    TTL_PRICES: int = int(os.getenv("TTL_PRICES", "1800"))
    CACHE_MAX_ENTRIES: int = int(os.getenv("CACHE_MAX_ENTRIES", "1024"))
    CACHE_SWEEP_INTERVAL: int = int(os.getenv("CACHE_SWEEP_INTERVAL", "300"))

    # --- Validation ---
    _RECOMMENDED = {
        "SESSION_SECRET": "Using the development session secret; set one for production",
        "STEAM_API_KEY": "Steam sign-in and every /api/steam endpoint are disabled",
        "GGDEALS_API_KEY": "/api/steam/prices will answer 500 until a key is configured",
    }

    def max_ttl(self) -> int:
        return max(
            self.TTL_GAMES,
            self.TTL_PROFILE,
            self.TTL_FRIENDS,
            self.TTL_ACHIEVEMENTS,
            self.TTL_PRICES,
        )

    def steam_return_url(self) -> str:
        return self.STEAM_RETURN_URL or f"http://localhost:{self.PORT}/api/auth/steam/callback"

    def steam_realm(self) -> str:
        return self.STEAM_REALM or f"http://localhost:{self.PORT}/"

    @classmethod
    def validate(cls) -> None:
        """Log warnings for missing recommended env vars."""
        for var, hint in cls._RECOMMENDED.items():
            if not os.getenv(var):
                log.warning("Missing env var %s: %s", var, hint)


settings = Settings()
