"""
Trek Chat 服务层的全局配置。
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ServiceConfig(BaseSettings):
    """服务层配置。"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TREK_",
        extra="ignore",
    )

    # 数据库路径覆盖（可选）
    DB_PATH: Optional[str] = None

    # Presence
    TYPING_TTL_SECONDS: int = 5
    ACTIVE_WINDOW_MINUTES: int = 10
    CHAT_HISTORY_LIMIT: int = 50

    # S3 blob storage for post images and avatars
    AWS_BUCKET_NAME: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_PREFIX: str = "uploads/"

    # Admin console
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""

    LOG_DIR: str = "logs"


# 全局配置实例
config = ServiceConfig()
