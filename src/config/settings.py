from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # DATABASE_URL이 있으면 그대로 사용 (테스트/로컬 sqlite 등), 없으면 MySQL 조합
    database_url: Optional[str] = None

    db_user: str = "root"
    db_pass: str = ""
    db_host: str = "localhost"
    db_port: int = 3306
    db_name: str = "mojing"

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: Optional[str] = None

    timezone: str = "Asia/Shanghai"

    # scheduler
    scheduler_enabled: bool = True
    daily_generation_hour: int = 0
    daily_generation_minute: int = 1
    cleanup_hour: int = 0
    cleanup_minute: int = 0
    poll_interval_minutes: int = 5
    startup_check_delay_seconds: int = 1

    seed_templates_on_startup: bool = True
    log_level: str = "INFO"

settings = Settings()
