"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./coinpay.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class PaymentSettings(BaseModel):
    poll_interval_seconds: float = Field(default=4.0, gt=0)
    onchain_expiry_minutes: int = Field(default=15, gt=0)
    gateway_expiry_minutes: int = Field(default=60, gt=0)
    expiry_sweep_seconds: float = Field(default=30.0, gt=0)
    destination_address: str = ""
    token_symbol: str = "TON"
    fiat_currency: str = "NGN"


class OracleSettings(BaseModel):
    static_rate: str = "1500"


class TonSettings(BaseModel):
    api_base_url: str = "https://toncenter.com/api/v2"
    api_key: str = ""
    lookback: int = Field(default=30, gt=1)
    max_pages: int = Field(default=20, gt=0)
    request_timeout: float = 15.0


class PaystackSettings(BaseModel):
    secret_key: str = ""
    public_key: str = ""
    base_url: str = "https://api.paystack.co"
    callback_url: Optional[str] = None
    request_timeout: float = 15.0


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Coin Purchase Reconciliation Service"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    payments: PaymentSettings = PaymentSettings()
    oracle: OracleSettings = OracleSettings()
    ton: TonSettings = TonSettings()
    paystack: PaystackSettings = PaystackSettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def poll_interval(self) -> float:
        return self.payments.poll_interval_seconds


@lru_cache()
def get_settings() -> Settings:
    return Settings()
