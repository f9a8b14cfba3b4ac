# discovery/config.py
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ELASTICSEARCH_HOST: str = "http://elasticsearch:9200"
    LISTINGS_INDEX: str = "listings"
    ES_REQUEST_TIMEOUT: float = 10.0
    ES_CONNECT_RETRIES: int = 10
    ES_RETRY_BACKOFF_SEC: float = 1.0

    # Rates are written by the bridge server, we only read them
    REDIS_URL: str = "redis://redis:6379/0"
    RATES_TIMEOUT: float = 2.0

    LOG_LEVEL: str = "INFO"
    HEALTH_REPORT_MINUTE: str = "*/5"

    WEB_HOST: str = "0.0.0.0"
    WEB_PORT: int = 4000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
