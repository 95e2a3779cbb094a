from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="furioso/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "QG FURIOSO Coins API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "furioso"
    POSTGRES_SCHEMA: str = "public"

    # 지정되면 POSTGRES_* 값 대신 사용 (테스트/로컬 SQLite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    # Security
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Coin Rules
    SIGNUP_BONUS_COINS: int = 100  # 신규 가입 보너스 코인
    LEDGER_HISTORY_MAX_LIMIT: int = 100  # 거래 내역 조회 최대 건수
    ADMIN_PAGE_MAX_LIMIT: int = 100
    METRICS_DEFAULT_DAYS: int = 30
    REFUND_ON_REDEMPTION_CANCEL: bool = True  # 교환 취소 시 코인 환불 여부

    # CORS
    ALLOWED_ORIGINS: list[str] = ["*"]


settings = Settings()
