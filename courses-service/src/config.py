from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./courses.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    SECRET_KEY: str = "dev-secret-courses"
    JWT_ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"
    CACHE_TTL: int = 300  # 5 minutes

    # Объектное хранилище (S3 / MinIO)
    S3_BUCKET: str = "course-content"
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str | None = None
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_ROOT_PREFIX: str = ""
    S3_CONNECT_TIMEOUT: int = 10
    S3_READ_TIMEOUT: int = 300
    S3_MAX_ATTEMPTS: int = 3

    SIGNED_URL_TTL: int = 3600  # 1 hour
    STREAM_URL_TTL: int = 1800  # 30 minutes
    THUMBNAIL_URL_TTL: int = 604800  # 7 days

    MAX_MATERIAL_SIZE: int = 100 * 1024 * 1024
    MAX_VIDEO_SIZE: int = 500 * 1024 * 1024
    MAX_THUMBNAIL_SIZE: int = 5 * 1024 * 1024

    # Сколько секунд ждать блокировку курса перед ConcurrencyConflict
    COURSE_LOCK_TIMEOUT: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
