from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Waste Complaint Tracker"
    DATABASE_URL: str = "sqlite:///./waste_tracker.db"
    SQL_ECHO: bool = False

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    SESSION_EXPIRE_HOURS: int = 24

    CORS_ORIGINS: List[str] = ["http://localhost:8080", "https://localhost:8080"]
    LOG_LEVEL: str = "INFO"

    # Notification hook
    NOTIFY_WEBHOOK_URL: str = ""
    NOTIFY_TIMEOUT_SECONDS: float = 10.0

    # SMS gateway (Africa's Talking)
    SMS_ENABLED: bool = False
    SMS_COUNTRY_CODE: str = "+91"
    AFRICASTALKING_USERNAME: str = "sandbox"
    AFRICASTALKING_API_KEY: str = ""
    AFRICASTALKING_SENDER_ID: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
