from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Mahami"
    debug: bool = False
    log_level: str = "INFO"
    api_v1_prefix: str = "/api/v1"

    database_url: str = "sqlite:///./mahami.db"

    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    remember_me_access_token_expire_days: int = 30

    default_admin_email: str = "admin@mahami.sa"
    default_admin_password: str = "admin12345"

    currency: str = "SAR"
    platform_fee_rate: Decimal = Decimal("0.10")
    leader_commission_rate: Decimal = Decimal("0.03")
    hold_period_days: int = 7
    maturation_sweep_interval_seconds: int = 3600
    group_max_members_limit: int = 700

    campaign_price_basic: Decimal = Decimal("499.00")
    campaign_price_pro: Decimal = Decimal("1299.00")
    campaign_price_growth: Decimal = Decimal("2999.00")

    def campaign_package_price(self, package: str) -> Decimal:
        prices = {
            "basic": self.campaign_price_basic,
            "pro": self.campaign_price_pro,
            "growth": self.campaign_price_growth,
        }
        return prices[package]


settings = Settings()
