from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "FinanceTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="ap-south-1", validation_alias="DYNAMO_REGION")
    DYNAMO_USERS_TABLE: str = Field(default="finance-tracker-users", validation_alias="DYNAMO_TABLE_USERS")
    DYNAMO_TRANSACTIONS_TABLE: str = Field(
        default="finance-tracker-transactions", validation_alias="DYNAMO_TABLE_TRANSACTIONS"
    )

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production", validation_alias="JWT_SECRET")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # SMTP (Gmail app password by default)
    SMTP_HOST: str = Field(default="smtp.gmail.com")
    SMTP_PORT: int = Field(default=587)
    EMAIL_USER: str = Field(default="")
    EMAIL_PASS: str = Field(default="")
    CLIENT_BASE_URL: str = Field(default="http://localhost:5173/reset-password")

    # Dashboard bucketing happens in a fixed reporting timezone (IST)
    REPORTING_UTC_OFFSET_MINUTES: int = 330

    # Insight thresholds, percent
    INSIGHT_CATEGORY_THRESHOLD: float = 20.0
    INSIGHT_OVERALL_THRESHOLD: float = 10.0

    # Monthly report job (UTC)
    MONTHLY_REPORTS_ENABLED: bool = True
    MONTHLY_REPORTS_DAY: int = 1
    MONTHLY_REPORTS_HOUR: int = 0
    MONTHLY_REPORTS_MINUTE: int = 30

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "https://finance-tracker-frontend.vercel.app",
    ]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
