"""配置模块：从环境变量与 .env 文件加载设置，并通过 ``get_settings()`` 缓存。

加载顺序：``.env`` -> ``.env.<ENVIRONMENT>``（覆盖前者）；设置 ``ENV_FILE`` 时只加载该文件。
已存在的进程环境变量优先级最高。
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# app/packages/portfolio/core/config.py -> 项目根目录
BASE_DIR = Path(__file__).resolve().parents[4]


def _env_files() -> List[Path]:
    override = os.getenv("ENV_FILE")
    if override:
        return [BASE_DIR / override]
    files = [BASE_DIR / ".env"]
    environment = os.getenv("ENVIRONMENT")
    if environment:
        name = environment if environment.startswith(".env") else f".env.{environment}"
        files.append(BASE_DIR / name)
    return files


def _load_environment() -> None:
    merged = {}
    for env_file in _env_files():
        if env_file.exists():
            merged.update(dotenv_values(env_file, encoding="utf-8"))
    for key, value in merged.items():
        if value is not None:
            os.environ.setdefault(key, value)


_load_environment()


class Settings(BaseSettings):
    """应用运行所需的全部配置项，字段均可通过同名（大写）环境变量覆盖。"""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    project_name: str = Field(default="Portfolio Filesystem API", alias="PROJECT_NAME")
    api_v1_str: str = Field(default="/api/v1", alias="API_V1_STR")
    debug: bool = Field(default=False, alias="DEBUG")
    app_port: int = Field(default=8000, alias="APP_PORT")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    # 元数据库：显式提供 DATABASE_URL（如 sqlite:///./portfolio.db）时忽略下面的分项配置
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    database_host: str = Field(default="localhost", alias="DATABASE_HOST")
    database_port: int = Field(default=5432, alias="DATABASE_PORT")
    database_user: str = Field(default="postgres", alias="DATABASE_USER")
    database_password: str = Field(default="postgres", alias="DATABASE_PASSWORD")
    database_name: str = Field(default="portfolio", alias="DATABASE_NAME")
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_dir: str = Field(default="log", alias="LOG_DIR")
    log_file_name: str = Field(default="app.log", alias="LOG_FILE_NAME")
    log_json: bool = Field(default=False, alias="LOG_JSON")
    # 关闭后只输出到控制台（容器环境通常由采集端落盘）
    log_to_file: bool = Field(default=True, alias="LOG_TO_FILE")
    log_backup_days: int = Field(default=14, alias="LOG_BACKUP_DAYS")

    # 文件字节存储：LOCAL（本地目录）或 S3（对象存储）
    blob_backend: str = Field(default="LOCAL", alias="BLOB_BACKEND")
    blob_local_root: str = Field(default="uploads", alias="BLOB_LOCAL_ROOT")
    s3_bucket: Optional[str] = Field(default=None, alias="S3_BUCKET")
    s3_region: Optional[str] = Field(default=None, alias="S3_REGION")
    s3_access_key_id: Optional[str] = Field(default=None, alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: Optional[str] = Field(default=None, alias="S3_SECRET_ACCESS_KEY")
    s3_prefix: Optional[str] = Field(default=None, alias="S3_PREFIX")
    s3_endpoint_url: Optional[str] = Field(default=None, alias="S3_ENDPOINT_URL")

    # 目录列表的默认分页大小
    finder_default_limit: int = Field(default=100, alias="FINDER_DEFAULT_LIMIT")

    @property
    def sql_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @staticmethod
    def _absolute(raw: str) -> Path:
        path = Path(raw)
        return path if path.is_absolute() else BASE_DIR / path

    @property
    def log_directory(self) -> Path:
        return self._absolute(self.log_dir)

    @property
    def log_file_path(self) -> Path:
        return self.log_directory / self.log_file_name

    @property
    def blob_local_directory(self) -> Path:
        return self._absolute(self.blob_local_root)

    @property
    def timezone_info(self) -> ZoneInfo:
        """无法解析的时区名回退到 UTC。"""
        try:
            return ZoneInfo(self.timezone)
        except ZoneInfoNotFoundError:
            return ZoneInfo("UTC")


@lru_cache
def get_settings() -> Settings:
    return Settings()
