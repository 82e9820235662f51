"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API
    GEMINI_API_KEY: str
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_VISION_MODEL: str = "gemini-2.0-flash"
    GEMINI_TIMEOUT_SECONDS: int = 60

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Object storage (S3 compatible)
    S3_BUCKET: str = "neet-quiz-images"
    S3_REGION: str = "ap-south-1"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_PUBLIC_BASE_URL: Optional[str] = None
    S3_KEY_PREFIX: str = "quiz-images"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # Application
    APP_NAME: str = "NEET Quiz Pipeline"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000
    GENERATION_RATE_LIMIT_PER_MINUTE: int = 10

    # Image extraction
    SCREENSHOT_DETECTION_ENABLED: bool = False
    TESSERACT_LANG: str = "eng"
    EXTRACTION_MAX_WORKERS: int = 4
    MAX_IMAGES_PER_BATCH: int = 10

    # Quiz Settings
    QUESTIONS_PER_QUIZ: int = 5
    RESULT_CACHE_TTL: int = 3600  # 1 hour

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
