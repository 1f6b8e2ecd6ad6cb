from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'School Management'
    app_env: str = 'local'
    database_url: str = 'sqlite:///./school.db'
    log_level: str = 'INFO'
    cors_allow_origins: list[str] = ['http://localhost:5173']
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 12
    auth_cookie_name: str = 'auth_session'
    auth_login_url: str = 'http://localhost:5173/login'
    bootstrap_admin_email: str = ''
    fee_receipt_prefix: str = 'RCPT'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
