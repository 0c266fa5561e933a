from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List

class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Courier Dispatch API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 4001

    # Database
    DATABASE_URL: str = f"sqlite+aiosqlite:///{DATA_DIR}/courier.db"
    DB_ECHO: bool = False

    # Security
    SECRET_KEY: str = "your-secret-key-here"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Dispatch
    MAX_ROUTE_DISTANCE_KM: float = 2.0  # попутный заказ: клиенты не дальше 2 км друг от друга
    CLAIM_TIMEOUT_SECONDS: float = 15.0
    CANCEL_WINDOW_SECONDS: int = 30
    COURIER_LOCATION_MAX_AGE_SECONDS: int = 120
    SHOW_ALL_ORDERS_DEBUG: bool = False

    # Retry (StoreUnavailable / Timeout)
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 0.5
    RETRY_MAX_DELAY_SECONDS: float = 4.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

# Создаем экземпляр настроек
settings = Settings()
