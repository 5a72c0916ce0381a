from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from the environment / .env file"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Environment
    ENVIRONMENT: str = "development"
    PROJECT_NAME: str = "BloodLens"
    VERSION: str = "1.0.0"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./bloodlens.db"

    # OpenAI
    OPENAI_API_KEY: str = ""
    ANALYSIS_MODEL: str = "gpt-4o"
    CHAT_MODEL: str = "gpt-4o-mini"
    ANALYSIS_TIMEOUT_SECONDS: float = 180.0
    ANALYSIS_MAX_TOKENS: int = 8000
    CHAT_MAX_TOKENS: int = 500

    # Upload normalization
    IMAGE_MAX_EDGE: int = 800
    IMAGE_JPEG_QUALITY: int = 85
    MAX_UPLOAD_MB: int = 10

    # Freemium
    FREE_TIER_ANALYSES_LIMIT: int = 1

    # Razorpay
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_PRO_PLAN_ID: str = ""
    RAZORPAY_FAMILY_PLAN_ID: str = ""
    SUBSCRIPTION_TOTAL_COUNT: int = 12  # billing cycles, one year max

    # Share links
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # Identity. With FIREBASE_PROJECT_ID set, bearer tokens are Firebase ID
    # tokens; otherwise HS256 tokens signed with JWT_SECRET_KEY.
    FIREBASE_PROJECT_ID: str = ""
    JWT_SECRET_KEY: str = ""  # required for HS256 tokens
    JWT_ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_UPLOAD_MB * 1024 * 1024


# Settings singleton
settings = Settings()
