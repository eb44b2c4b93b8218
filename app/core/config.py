from decimal import Decimal
from typing import Dict, List, Literal, Union
from pydantic import AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "IPD Billing Service"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Hospital REST backend
    BACKEND_API_URL: str = "http://localhost:3000"
    BACKEND_TIMEOUT_SECONDS: float = 10.0

    @field_validator("BACKEND_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # Billing defaults
    DEFAULT_WARD_DAILY_RATE: Decimal = Decimal("1500")
    # Per-day bed tariff by bed category, used when the admission carries no ward rate
    WARD_CATEGORY_RATES: Dict[str, Decimal] = {
        "general": Decimal("1500"),
        "semi-private": Decimal("2500"),
        "private": Decimal("4000"),
        "deluxe": Decimal("6000"),
        "icu": Decimal("8000"),
        "nicu": Decimal("10000"),
    }
    DEFAULT_TAX_PERCENT: Decimal = Decimal("5")
    DEFAULT_DISCOUNT_PERCENT: Decimal = Decimal("0")
    CURRENCY_SYMBOL: str = "Rs."

    # Bill drafts
    DRAFT_STORE: Literal["memory", "redis"] = "memory"
    DRAFT_TTL_SECONDS: int = 60 * 60 * 12

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra='ignore')

settings = Settings()
