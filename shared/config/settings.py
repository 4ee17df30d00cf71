import os
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _database_url() -> str:
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    user = os.getenv("POSTGRES_USER", "postgres")
    password = os.getenv("POSTGRES_PASSWORD", "postgres")
    host = os.getenv("POSTGRES_HOST", "localhost")  # In Docker, this will be 'postgres'
    port = os.getenv("POSTGRES_PORT", "5433")
    name = os.getenv("POSTGRES_DB", "storefront")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{name}"


class Settings(BaseModel):
    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "storefront")

    # Database
    DATABASE_URL: str = _database_url()
    SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() == "true"

    # Stripe
    STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")

    # Auth/JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Observability
    OTLP_ENDPOINT: str = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
    TRACING_ENABLED: bool = os.getenv("TRACING_ENABLED", "true").lower() == "true"

    # Rate limits (slowapi syntax)
    REFUND_RATE_LIMIT: str = os.getenv("REFUND_RATE_LIMIT", "20/minute")
    CANCEL_RATE_LIMIT: str = os.getenv("CANCEL_RATE_LIMIT", "10/minute")
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"


settings = Settings()
