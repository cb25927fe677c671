from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    telegram_bot_token: str = ""
    webhook_url: str = ""
    bot_mode: str = "polling"  # "polling" or "webhook"
    database_url: str = "sqlite:///data/db/rangeround.db"
    offline_dir: str = "data/offline"
    default_mulligans: int = 2
    active_window_minutes: int = 5
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
