"""Storecore Configuration"""

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment"""

    # Application
    app_name: str = "Storecore"
    debug: bool = False
    log_level: str = "INFO"

    # Merchant collaborator
    merchant_base_url: str = "http://localhost:8001"
    request_timeout: float = 30.0

    # Pricing
    currency: str = "PHP"
    tax_rate: Decimal = Decimal("0.08")

    # Shipping
    free_shipping_threshold: Decimal = Decimal("2500")
    standard_shipping_rate: Decimal = Decimal("150")
    express_shipping_rate: Decimal = Decimal("300")

    # Local cart mirror
    cart_storage_key: str = "shopCoreCart"
    cart_storage_path: str = ".storecore/cart.json"

    # POS
    cashier_id: Optional[str] = None

    class Config:
        env_prefix = "STORECORE_"
        env_file = "config/.env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging for an application embedding the engine"""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
