from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "QnA"
    debug: bool = False

    # Storage
    qna_dir: str = "./data/qna"
    qna_storage_backend: str = "file"  # file | memory

    # Interchange
    qna_export_csv_encoding: str = "utf-8"
    qna_import_encoding: str = "utf-8"
    qna_default_page_size: int = 50

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
