from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "ExpenseTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # DynamoDB
    DYNAMO_REGION: str = "eu-west-1"
    DYNAMO_ENDPOINT_URL: Optional[str] = None  # e.g. http://localhost:8000 for DynamoDB Local
    DYNAMO_USERS_TABLE: str = "expense-tracker-users"
    DYNAMO_LEDGER_TABLE: str = "expense-tracker-ledger"
    DYNAMO_CREATE_TABLES: bool = False

    # AWS S3 (profile images)
    S3_BUCKET_NAME: str = "expense-tracker-profile-images"
    S3_REGION: str = "eu-west-1"
    S3_IMAGE_FOLDER: str = "expense-tracker"

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 120  # 2 hours

    # Password hashing
    BCRYPT_ROUNDS: int = 10


settings = Settings()
