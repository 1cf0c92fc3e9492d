"""Configuration for the codec and the storage backends."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geohash_codec import Location, Region


class Settings(BaseSettings):
    """Settings loaded from ``GEOHASH_*`` environment variables or a .env file."""

    # Codec
    default_precision: int = 5
    min_latitude: float = -90.0
    max_latitude: float = 90.0
    min_longitude: float = -180.0
    max_longitude: float = 180.0

    # Redis connection
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="GEOHASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("default_precision")
    @classmethod
    def _check_precision(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Precision must be at least 1")
        return value

    @property
    def region(self) -> Region:
        """Bounding region every geohash is encoded against."""
        return Region(
            Location(self.min_latitude, self.min_longitude),
            Location(self.max_latitude, self.max_longitude),
        )

    @property
    def redis_url(self) -> str:
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


settings = Settings()
