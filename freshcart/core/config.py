# freshcart/core/config.py
from datetime import time
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Delivery rules (optional, defaults match the Faisalabad launch):
      - DEFAULT_CENTER_LAT / DEFAULT_CENTER_LNG / DEFAULT_RADIUS_KM
        used when no service_area row is active
      - ELIGIBILITY_POLICY: "radius" | "pin_code"
      - SLOT_RELEASE_ON_CANCEL: free slot capacity when an order is cancelled
    """

    PROJECT_NAME: str = "FreshCart Backend"
    API_V1_STR: str = "/api/v1"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Service area fallback when no row is active
    DEFAULT_CENTER_LAT: float = 31.4504
    DEFAULT_CENTER_LNG: float = 73.1350
    DEFAULT_RADIUS_KM: float = 15.0
    DEFAULT_CITY_NAME: str = "Faisalabad"
    DEFAULT_COUNTRY: str = "Pakistan"

    # Reference points for "closest area" hints
    POPULAR_AREAS: list[tuple[str, float, float]] = [
        ("D Ground", 31.4180, 73.0790),
        ("Ghulam Muhammad Abad", 31.4030, 73.1100),
        ("Peoples Colony", 31.4280, 73.0680),
        ("Samanabad", 31.4450, 73.0850),
        ("Susan Road", 31.4125, 73.0743),
    ]

    ELIGIBILITY_POLICY: Literal["radius", "pin_code"] = "radius"

    # Delivery slots
    SLOT_DEFAULT_MAX_ORDERS: int = 10
    SLOT_RELEASE_ON_CANCEL: bool = False
    MORNING_WINDOW: tuple[time, time] = (time(7, 0), time(10, 0))
    EVENING_WINDOW: tuple[time, time] = (time(17, 0), time(20, 0))
    BULK_SLOT_MAX_DAYS: int = 60

    ORDER_NUMBER_PREFIX: str = "ORD"

    # Order emails; empty SMTP_HOST disables them
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "FreshCart"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
