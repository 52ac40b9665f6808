from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Default to sqlite, but easy to override with env var DATABASE_URL
    DATABASE_URL: str = "sqlite:///./crm.db"
    # Required; there is no fallback signing key
    SECRET_KEY: str

    # Session token (JWT)
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    SESSION_COOKIE_NAME: str = "crm_session"
    SESSION_COOKIE_SECURE: bool = False

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    APP_TITLE: str = "Lead CRM"
    APP_VERSION: str = "0.1.0"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
