# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Literal, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    APP_NAME: str = "Cafe Bianca POS"

    # Which persistence backend serves the catalog and the orders
    STORE_BACKEND: Literal["embedded", "rest"] = "embedded"

    # Embedded store: directory acting as the key-value namespace for the snapshot
    DATA_DIR: str = "./data"
    SNAPSHOT_KEY: str = "cafebianca_db"

    # Hosted store (PostgREST-style API)
    REST_API_URL: Optional[str] = None
    REST_API_KEY: Optional[str] = None
    REST_TIMEOUT: float = 10.0

    # Listing / reporting limits
    ORDERS_LIST_LIMIT: int = 50
    TOP_PRODUCTS_LIMIT: int = 5
    SALES_DAYS_LIMIT: int = 7

    LOG_LEVEL: str = "INFO"
    FRONTEND_URL: Optional[str] = None
    SEED_DEMO_DATA: bool = False

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
