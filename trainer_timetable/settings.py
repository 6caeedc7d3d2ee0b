from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    secret_key: str = "dev-secret"
    database_url: str = "sqlite:///./trainer_timetable.db"
    cookie_secure: bool = False
    log_level: str = "INFO"

    default_session_minutes: int = 60
    notification_limit: int = 50

    bootstrap_admin_name: str = "Administrator"
    bootstrap_admin_email: str = "admin@example.com"
    bootstrap_admin_password: str = "admin123"


settings = Settings()
